import os
from pathlib import Path
from typing import NamedTuple

import dotenv

DEFAULT_TITLE = "No DB Minimal Board with Images"


class BoardSettings(NamedTuple):
    upload_dir: Path
    host: str = "0.0.0.0"
    port: int = 8080
    read_timeout: float | None = 30.0  # idle seconds between body chunks
    lock_timeout: float = 5.0
    title: str = DEFAULT_TITLE


def _number(name: str, default: str, cast=float, minimum=0, maximum=None):
    raw = os.environ.get(name, default).strip()
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < minimum or (maximum is not None and value > maximum):
        upper = maximum if maximum is not None else "inf"
        raise ValueError(f"{name} must be between {minimum} and {upper}, got {raw!r}")
    return value


def load_settings(env_file: str | Path | None = None) -> BoardSettings:
    """
    Reads BOARD_* environment variables. A .env file is honoured, but never
    overrides variables already set.

    Example .env:
    BOARD_UPLOAD_DIR=./uploads/images
    BOARD_PORT=8080
    BOARD_READ_TIMEOUT=0     # disable the upload idle timeout
    """
    dotenv.load_dotenv(env_file)

    read_timeout = _number("BOARD_READ_TIMEOUT", "30")
    return BoardSettings(
        upload_dir=Path(os.environ.get("BOARD_UPLOAD_DIR", "./uploads/images")),
        host=os.environ.get("BOARD_HOST", "0.0.0.0"),
        port=_number("BOARD_PORT", "8080", int, maximum=65535),
        read_timeout=read_timeout if read_timeout > 0 else None,
        lock_timeout=_number("BOARD_LOCK_TIMEOUT", "5"),
        title=os.environ.get("BOARD_TITLE", DEFAULT_TITLE),
    )
