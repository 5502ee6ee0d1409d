# nodb_board/routes/board.py
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from nodb_board.errors import BoardError, ClientInputError
from nodb_board.multipart_stream import iter_parts
from nodb_board.render import render_board
from nodb_board.settings_loader import BoardSettings
from nodb_board.store import PostStore, get_post_store
from nodb_board.upload import UploadPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["board"])


def get_settings(request: Request) -> BoardSettings:
    return request.app.state.settings


def get_upload_pipeline(request: Request) -> UploadPipeline:
    return request.app.state.upload_pipeline


@router.get("/", response_class=HTMLResponse)
async def homepage(
    store: PostStore = Depends(get_post_store),
    settings: BoardSettings = Depends(get_settings),
) -> HTMLResponse:
    return HTMLResponse(render_board(store.snapshot(), settings.title))


@router.post("/post")
async def create_post(
    request: Request,
    store: PostStore = Depends(get_post_store),
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
    settings: BoardSettings = Depends(get_settings),
) -> RedirectResponse:
    """
    Reads the multipart body part by part. Responds 303 to the board on
    success; every failure is a BoardError rendered as plain text.
    """
    parts = iter_parts(
        request.headers.get("content-type"),
        request.stream(),
        read_timeout=settings.read_timeout,
    )
    try:
        pending = await pipeline.run(parts)
    except BoardError as e:
        logger.warning(f"Rejected submission: {e.reason}")
        raise

    try:
        if not pending.is_complete():
            raise ClientInputError("Name, Subject, and Body are required")
        post = pending.to_post()
        store.append(post)
    except BoardError as e:
        logger.warning(f"Rejected submission: {e.reason}")
        await pipeline.discard(pending)
        raise

    logger.info(f"Stored post {post.id} (image: {post.image_url or 'none'})")
    return RedirectResponse("/", status_code=303)
