import uvicorn

from nodb_board.settings_loader import load_settings


def main():
    settings = load_settings()
    uvicorn.run(
        "nodb_board.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
