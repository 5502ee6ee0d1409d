# --- Pydantic Models ---
import uuid
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Post(BaseModel):
    """A finished submission. Frozen: posts are never edited after creation."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    subject: str
    body: str
    image_url: str | None = None


class PendingSubmission(BaseModel):
    """Accumulates one in-flight submission while its parts arrive"""

    name: str = ""
    subject: str = ""
    body: str = ""
    image_url: str | None = None
    # Written to disk but not yet backed by a stored post
    image_path: Path | None = None

    def is_complete(self) -> bool:
        return bool(self.name and self.subject and self.body)

    def to_post(self) -> Post:
        return Post(
            name=self.name,
            subject=self.subject,
            body=self.body,
            image_url=self.image_url,
        )
