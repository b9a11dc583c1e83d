"""Shared test fixtures for pytest suite.

Provides fixtures for:
- site_dir: Static root laid out like a small SPA (index, about, default, blog/)
- app: Flask test app serving site_dir
- client: Flask test client for app
- log_messages: Captured loguru messages for the duration of a test
- service: Service bound to an ephemeral localhost port, cleaned up afterwards
"""
import pytest
from loguru import logger

from web.app import create_app
from web.service import Service


# ---------------------------------------------------------------------------
# Static site fixtures
# ---------------------------------------------------------------------------

SITE_FILES = {
    "index.html": "<h1>home</h1>",
    "about.html": "<h1>about</h1>",
    "default.html": "<h1>app shell</h1>",
    "blog/index.html": "<h1>blog</h1>",
    "blog/post.html": "<h1>post</h1>",
    "assets/app.js": "console.log('app');",
    "docs/readme.txt": "plain text",
}


@pytest.fixture
def site_dir(tmp_path):
    """Create the SPA layout under a temp directory and return its path."""
    root = tmp_path / "site"
    for name, body in SITE_FILES.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body)
    return root


# ---------------------------------------------------------------------------
# Flask app fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def app(site_dir, monkeypatch):
    """Flask test app resolving files against site_dir (also the cwd)."""
    monkeypatch.chdir(site_dir)
    application = create_app()
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


# ---------------------------------------------------------------------------
# Logging / service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def log_messages():
    """List that receives every loguru message emitted during the test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def service():
    """Service on 127.0.0.1 with an OS-assigned port."""
    svc = Service("127.0.0.1", 0)
    yield svc
    svc.cleanup()
