# nodb_board/errors.py
from fastapi import Request
from fastapi.responses import PlainTextResponse


class BoardError(Exception):
    """Base for every error that ends a request with a short plain-text reason"""

    status_code: int = 500

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason: str = reason


class ClientInputError(BoardError):
    """Bad form data, disallowed or corrupt image, broken multipart stream"""

    status_code = 400


class ServerIOError(BoardError):
    """The upload file could not be created or written"""

    status_code = 500


class StoreUnavailable(BoardError):
    """The post store lock could not be taken or the store failed mid-update"""

    status_code = 500


async def board_error_handler(request: Request, exc: BoardError) -> PlainTextResponse:
    return PlainTextResponse(exc.reason, status_code=exc.status_code)
