from __future__ import annotations

import os
import tempfile
from pathlib import Path

os.environ.setdefault("APP_LOG_DIR", tempfile.mkdtemp(prefix="ui-server-logs-"))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from loguru import logger

from ui_server.config import Settings, reset_settings_cache
from ui_server.main import create_app

INDEX_HTML = "<h1>hi</h1>"
CLASSIC_FORM_HTML = "<form id='classic'></form>"
PAPER_FORM_HTML = "<form id='paper'></form>"
APP_JS = b"console.log('app');\n"


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def dist_dir(tmp_path: Path) -> Path:
    dist = tmp_path / "dist"
    chunks = dist / "_next" / "static" / "chunks"
    chunks.mkdir(parents=True)

    (dist / "index.html").write_text(INDEX_HTML)
    (dist / "classic-form.html").write_text(CLASSIC_FORM_HTML)
    (dist / "paper-form.html").write_text(PAPER_FORM_HTML)
    (chunks / "app.js").write_bytes(APP_JS)
    (dist / "_next" / "static" / "site.css").write_text("body { margin: 0; }\n")
    return dist


@pytest.fixture
def settings(dist_dir: Path) -> Settings:
    return Settings(dist_dir=dist_dir)


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def captured_errors():
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), level="ERROR")
    yield records
    logger.remove(sink_id)
