# nodb_board/upload.py
import asyncio
import logging
import uuid
from contextlib import aclosing
from pathlib import Path
from typing import AsyncIterator

from nodb_board.errors import ServerIOError
from nodb_board.models import PendingSubmission
from nodb_board.multipart_stream import Part
from nodb_board.perf import async_perf_log
from nodb_board.validator import infer_image_subtype, verify_image

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("name", "subject", "body")
FILE_FIELD = "file"
PUBLIC_PREFIX = "/uploads/images"


def _write_new_file(path: Path, data: bytes) -> None:
    # "x": never overwrite an existing upload
    f = open(path, "xb")
    try:
        with f:
            f.write(data)
    except OSError:
        _remove_file(path)
        raise


def _remove_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")


class UploadPipeline:
    """
    Turns form parts into a PendingSubmission.

    Any image written to disk belongs to the submission until it is promoted
    to a post; if anything goes wrong first, the file is removed again.
    All disk work runs in worker threads.
    """

    def __init__(self, upload_dir: Path, public_prefix: str = PUBLIC_PREFIX):
        self.upload_dir: Path = upload_dir
        self.public_prefix: str = public_prefix.rstrip("/")

    async def run(self, parts: AsyncIterator[Part]) -> PendingSubmission:
        pending = PendingSubmission()
        try:
            async with async_perf_log("upload pipeline", logger), aclosing(parts):
                async for part in parts:
                    await self._accept(pending, part)
        except BaseException:
            # Includes cancellation when the client goes away
            await self.discard(pending)
            raise
        return pending

    async def discard(self, pending: PendingSubmission) -> None:
        if pending.image_path is not None:
            logger.info(f"Discarding unreferenced upload {pending.image_path.name}")
            await asyncio.to_thread(_remove_file, pending.image_path)
            pending.image_path = None
            pending.image_url = None

    async def _accept(self, pending: PendingSubmission, part: Part) -> None:
        if part.name in TEXT_FIELDS:
            value = part.data.decode("utf-8", errors="replace").strip()
            setattr(pending, part.name, value)
        elif part.name == FILE_FIELD:
            if not part.filename or not part.data:
                return
            path, url = await self._store_image(part.filename, part.data)
            previous = pending.image_path
            pending.image_path = path
            pending.image_url = url
            if previous is not None:
                # A repeated file field replaces the earlier image
                await asyncio.to_thread(_remove_file, previous)
        else:
            logger.debug(f"Ignoring unknown form field {part.name!r}")

    async def _store_image(self, filename: str, data: bytes) -> tuple[Path, str]:
        subtype = infer_image_subtype(filename)

        # The client's filename never reaches the filesystem
        stored_name = f"{uuid.uuid4().hex}.{subtype}"
        path = self.upload_dir / stored_name

        write = asyncio.ensure_future(asyncio.to_thread(_write_new_file, path, data))
        try:
            await asyncio.shield(write)
        except OSError as e:
            logger.error(f"Failed to write image {stored_name}: {e}")
            raise ServerIOError("Failed to save image") from e
        except BaseException:
            # Cancelled mid-write: the thread keeps going, so remove the file after it
            await asyncio.wait({write})
            await asyncio.to_thread(_remove_file, path)
            raise

        try:
            await asyncio.to_thread(verify_image, path)
        except BaseException:
            await asyncio.to_thread(_remove_file, path)
            raise

        logger.info(f"Stored image {stored_name} ({len(data)} bytes)")
        return path, f"{self.public_prefix}/{stored_name}"
