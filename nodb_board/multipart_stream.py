# nodb_board/multipart_stream.py
"""
Incremental multipart/form-data splitting.

The request body is pushed chunk by chunk into python-multipart's callback
parser and every part is handed out as soon as its closing boundary has been
seen, so the caller can act on early parts while later ones are still on the
wire.
"""
import asyncio
import logging
from collections import deque
from typing import AsyncIterable, AsyncIterator, NamedTuple

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, MultipartState, parse_options_header
from starlette.requests import ClientDisconnect

from nodb_board.errors import ClientInputError

logger = logging.getLogger(__name__)


class Part(NamedTuple):
    name: str
    filename: str | None
    data: bytes


def _decode_header(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


def get_boundary(content_type: str | None) -> bytes:
    mime_type, options = parse_options_header(content_type or "")
    if mime_type.strip().lower() != b"multipart/form-data":
        raise ClientInputError("Expected a multipart/form-data body")
    boundary = options.get(b"boundary")
    if not boundary:
        raise ClientInputError("Missing multipart boundary")
    return boundary


class _PartCollector:
    """Receives parser callbacks and queues up finished parts"""

    def __init__(self):
        self.finished: deque[Part] = deque()
        self._header_field: bytes = b""
        self._header_value: bytes = b""
        self._disposition: bytes | None = None
        self._name: str = ""
        self._filename: str | None = None
        self._data: bytearray = bytearray()

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
        }

    def on_part_begin(self) -> None:
        self._disposition = None
        self._name = ""
        self._filename = None
        self._data = bytearray()

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        if self._header_field.strip().lower() == b"content-disposition":
            self._disposition = self._header_value
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        _, options = parse_options_header(self._disposition)
        if b"name" not in options:
            raise ClientInputError("Form part without a field name")
        self._name = _decode_header(options[b"name"])
        if b"filename" in options:
            self._filename = _decode_header(options[b"filename"])

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._data += data[start:end]

    def on_part_end(self) -> None:
        self.finished.append(Part(self._name, self._filename, bytes(self._data)))
        self._data = bytearray()


async def _next_chunk(chunks: AsyncIterator[bytes], read_timeout: float | None) -> bytes:
    if read_timeout is None:
        return await chunks.__anext__()
    try:
        return await asyncio.wait_for(chunks.__anext__(), read_timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Upload stalled for more than {read_timeout}s")
        raise ClientInputError("Upload timed out") from None


async def iter_parts(
    content_type: str | None,
    body: AsyncIterable[bytes],
    read_timeout: float | None = None,
) -> AsyncIterator[Part]:
    """
    Yields each form part of `body` in arrival order.

    Raises ClientInputError if the body is not multipart, is cut short before
    the closing boundary, stalls for longer than `read_timeout` between
    chunks, or the client goes away.
    """
    collector = _PartCollector()
    parser = MultipartParser(get_boundary(content_type), collector.callbacks())
    chunks = body.__aiter__()

    while True:
        try:
            chunk = await _next_chunk(chunks, read_timeout)
        except StopAsyncIteration:
            break
        except ClientDisconnect:
            raise ClientInputError("Client disconnected during upload") from None

        if chunk:
            try:
                parser.write(chunk)
            except MultipartParseError as e:
                logger.warning(f"Multipart parse error: {e}")
                raise ClientInputError("Malformed multipart body") from e

        while collector.finished:
            yield collector.finished.popleft()

    if parser.state != MultipartState.END:
        raise ClientInputError("Truncated multipart body")
    parser.finalize()
