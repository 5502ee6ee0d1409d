# nodb_board/validator.py
import logging
import mimetypes
import os
from pathlib import Path

from PIL import Image

from nodb_board.errors import ClientInputError

logger = logging.getLogger(__name__)

ALLOWED_SUBTYPES = frozenset({"jpeg", "jpg", "png", "gif", "webp"})

# Older mime tables lack webp
mimetypes.add_type("image/webp", ".webp")


def infer_image_subtype(filename: str) -> str:
    """
    Maps the claimed filename's extension to an allowed image subtype.
    Only the extension is consulted; content is checked by verify_image().
    """
    ext = os.path.splitext(filename)[1].lower()
    mime_type, _ = mimetypes.guess_type(f"upload{ext}")
    if not mime_type:
        raise ClientInputError("Only image uploads are allowed")

    top_level, _, subtype = mime_type.partition("/")
    if top_level != "image":
        raise ClientInputError("Only image uploads are allowed")
    if subtype not in ALLOWED_SUBTYPES:
        raise ClientInputError("Unsupported image format")
    return subtype


def verify_image(path: Path) -> None:
    """Decodes the whole file. Blocking; call it from a worker thread."""
    # Pillow plugins raise anything from OSError to struct.error on bad data
    try:
        with Image.open(path) as img:
            img.load()
    except Exception as e:
        logger.warning(f"Rejected {path.name}: not a decodable image ({e})")
        raise ClientInputError("Invalid image file") from e
