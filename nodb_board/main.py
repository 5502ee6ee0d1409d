import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from nodb_board.errors import BoardError, board_error_handler
from nodb_board.perf import performance_middleware
from nodb_board.routes import board
from nodb_board.settings_loader import BoardSettings, load_settings
from nodb_board.store import InMemoryPostStore
from nodb_board.upload import PUBLIC_PREFIX, UploadPipeline

logger = logging.getLogger(__name__)
logging.basicConfig()
logging.getLogger("nodb_board").setLevel(logging.INFO)


def create_app(settings: BoardSettings | None = None) -> FastAPI:
    settings = settings or load_settings()

    # StaticFiles refuses a missing directory, so create it before mounting
    settings.upload_dir.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Board starting, uploads in {settings.upload_dir.resolve()}, "
            f"{len(app.state.post_store)} posts"
        )
        yield
        # Posts live in memory only
        logger.info(f"Board stopping, dropping {len(app.state.post_store)} posts")

    app = FastAPI(title="nodb_board", lifespan=lifespan)

    app.state.settings = settings
    app.state.post_store = InMemoryPostStore(lock_timeout=settings.lock_timeout)
    app.state.upload_pipeline = UploadPipeline(settings.upload_dir)

    app.middleware("http")(performance_middleware)
    app.add_exception_handler(BoardError, board_error_handler)
    app.include_router(board.router)
    app.mount(
        PUBLIC_PREFIX,
        StaticFiles(directory=settings.upload_dir),
        name="uploads",
    )
    return app
