"""Route registration helpers for the pre-built UI pages and assets."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from ui_server.logger import get_logger

logger = get_logger()

_PATTERN_CHARACTERS = "{}*"


class RouteConfigError(ValueError):
    """Raised when a route is registered with an invalid path."""


class StaticTree(StaticFiles):
    """StaticFiles that answers 404 while its directory does not exist yet."""

    async def check_config(self) -> None:
        try:
            await super().check_config()
        except RuntimeError as exc:
            raise HTTPException(status_code=404, detail="Not Found") from exc


def add_html_route(app: FastAPI, route_path: str, file_path: Path) -> None:
    """Serve ``file_path`` for GET requests to ``route_path``.

    The file is read from disk on every request.
    """

    def serve_html_file() -> FileResponse:
        if not file_path.is_file():
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(file_path)

    app.add_api_route(
        route_path,
        serve_html_file,
        methods=["GET"],
        include_in_schema=False,
        name=f"html:{route_path}",
    )
    logger.debug(f"HTML route {route_path} -> {file_path}")


def mount_static_tree(app: FastAPI, prefix: str, directory: Path) -> None:
    """Serve files under ``directory`` at ``prefix/<path>``.

    When ``prefix`` has no trailing slash, a request for it is permanently
    redirected to ``prefix/``.
    """

    if any(character in prefix for character in _PATTERN_CHARACTERS):
        raise RouteConfigError(
            f"Static mount prefix {prefix!r} must not contain URL parameters."
        )

    mount_path = prefix.rstrip("/")
    if mount_path and not prefix.endswith("/"):

        async def redirect_to_directory() -> RedirectResponse:
            return RedirectResponse(url=f"{mount_path}/", status_code=301)

        app.add_api_route(
            mount_path,
            redirect_to_directory,
            methods=["GET"],
            include_in_schema=False,
            name=f"redirect:{mount_path}",
        )

    app.mount(
        mount_path or "/",
        StaticTree(directory=directory, check_dir=False),
        name=f"static:{mount_path or '/'}",
    )
    logger.debug(f"Static tree {mount_path or '/'}/ -> {directory}")
