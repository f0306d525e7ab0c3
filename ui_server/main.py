from __future__ import annotations

from fastapi import FastAPI

from ui_server.config import Settings, get_settings
from ui_server.logger import get_logger
from ui_server.middleware import install_middleware
from ui_server.routes import add_html_route, mount_static_tree
from ui_server.utils.paths import STATIC_URL_PREFIX, resolve_site_paths

logger = get_logger()

HTML_ROUTES: dict[str, str] = {
    "/": "index.html",
    "/classic-form": "classic-form.html",
    "/paper-form": "paper-form.html",
}


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the static site application for the configured dist directory."""

    settings = settings or get_settings()
    site_paths = resolve_site_paths(settings.resolved_dist_dir)

    app = FastAPI(title="UI Static Site", docs_url=None, redoc_url=None, openapi_url=None)
    install_middleware(app, request_timeout=settings.request_timeout_seconds)

    mount_static_tree(app, STATIC_URL_PREFIX, site_paths.static_dir)
    for route_path, file_name in HTML_ROUTES.items():
        add_html_route(app, route_path, site_paths.html_file(file_name))

    logger.info(f"Serving UI bundle from {site_paths.base_dir}")
    return app


app = create_app()
