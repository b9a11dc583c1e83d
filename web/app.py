"""Flask app factory and entry point for the SPA service."""
import sys

from flask import Flask
from flask_talisman import Talisman
from loguru import logger

from config import (
    APP_NAME, APP_VERSION, WEB_HOST, WEB_PORT, STATIC_ROOT,
    SECURITY_HEADERS, LOGS_DIR, LOG_LEVEL,
)


def _setup_logging():
    """Configure loguru stderr logging, plus a rotating file when LOGS_DIR is set."""
    logger.remove()
    logger.add(sys.stderr, level=LOG_LEVEL, format="{time:HH:mm:ss} | {level: <8} | {message}")
    if LOGS_DIR is not None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(LOGS_DIR / "service.log"),
            rotation="5 MB",
            retention=5,
            level=LOG_LEVEL,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )

    def _exception_hook(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        logger.opt(exception=(exc_type, exc_value, exc_tb)).error(
            "Unhandled exception: {}", exc_value
        )

    sys.excepthook = _exception_hook


def create_app(serve_spa=True, static_root=None):
    """Build the WSGI app.

    With ``serve_spa`` the catch-all SPA blueprint is mounted; without it the
    app starts empty and the embedding application registers its own routes.
    """
    app = Flask(__name__, static_folder=None)
    app.config["STATIC_ROOT"] = static_root if static_root is not None else STATIC_ROOT

    if SECURITY_HEADERS:
        # SPA bundles commonly inline their bootstrap script and styles.
        csp = {
            "default-src": "'self'",
            "script-src": ["'self'", "'unsafe-inline'"],
            "style-src": ["'self'", "'unsafe-inline'"],
            "img-src": ["'self'", "data:", "blob:"],
            "object-src": "'none'",
            "base-uri": "'self'",
        }
        Talisman(
            app,
            content_security_policy=csp,
            force_https=False,
            strict_transport_security=False,
            session_cookie_secure=False,
        )

    if serve_spa:
        from web.blueprints.spa import spa_bp

        app.register_blueprint(spa_bp)

    return app


def main():
    from web.middleware import LoggingMiddleware
    from web.service import Service

    _setup_logging()
    logger.info("Starting {} v{}", APP_NAME, APP_VERSION)

    service = Service(WEB_HOST, WEB_PORT)
    service.handler = create_app()
    service.middleware = LoggingMiddleware
    service.run_and_wait()


if __name__ == "__main__":
    main()
