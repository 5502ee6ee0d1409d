import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Protocol

from fastapi import Request

from nodb_board.errors import StoreUnavailable
from nodb_board.models import Post

logger = logging.getLogger(__name__)


class PostStore(Protocol):
    """Anything that can hold posts for the board. Swap in a persistent one here."""

    def append(self, post: Post) -> None: ...

    def snapshot(self) -> tuple[Post, ...]: ...

    def __len__(self) -> int: ...


class InMemoryPostStore:
    """
    Posts kept in a list guarded by a single lock.

    The lock is always taken with a timeout and always released, so a failed
    writer costs its own request a StoreUnavailable and nothing more.
    """

    def __init__(self, lock_timeout: float = 5.0):
        self._posts: list[Post] = []
        self._lock: threading.Lock = threading.Lock()
        self.lock_timeout: float = lock_timeout

    @contextmanager
    def _locked(self, operation: str) -> Iterator[None]:
        # Called on the event loop thread. Holders never await, so waits here
        # last one list operation; the timeout only bites on a wedged holder.
        if not self._lock.acquire(timeout=self.lock_timeout):
            logger.error(f"Post store lock timed out during {operation}")
            raise StoreUnavailable("Post store is busy, try again")
        try:
            yield
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Post store {operation} failed: {e}")
            raise StoreUnavailable("Post store failed") from e
        finally:
            self._lock.release()

    def append(self, post: Post) -> None:
        with self._locked("append"):
            self._posts.append(post)

    def snapshot(self) -> tuple[Post, ...]:
        # Newest first
        with self._locked("snapshot"):
            return tuple(reversed(self._posts))

    def __len__(self) -> int:
        with self._locked("len"):
            return len(self._posts)


def get_post_store(request: Request) -> PostStore:
    return request.app.state.post_store
