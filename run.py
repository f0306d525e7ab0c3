from ui_server.config import get_settings
from ui_server.logger import get_logger

logger = get_logger()


def main() -> None:
    settings = get_settings()
    host = settings.host
    port = settings.port
    display_url = f"http://localhost:{port}"

    logger.info(
        "Server is running on {display_url} (binding to {host}:{port})",
        display_url=display_url,
        host=host,
        port=port,
    )

    import uvicorn

    uvicorn.run(
        app="ui_server.main:app",
        host=host,
        port=port,
        workers=1,
        log_level="info",
        access_log=False,
    )


if __name__ == "__main__":
    main()
