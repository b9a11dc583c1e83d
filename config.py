"""Shared configuration for the SPA service."""
import os
from pathlib import Path

APP_NAME = "spa-service"
APP_VERSION = "0.1.0"


def _env_flag(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Web server
# "*" binds every interface; any other non-empty value is used as-is.
WEB_HOST = os.environ.get("SPA_HOST", "*")
WEB_PORT = int(os.environ.get("SPA_PORT", "8080"))

# Read, write and idle timeout for each connection (seconds)
SERVER_TIMEOUT = float(os.environ.get("SPA_SERVER_TIMEOUT", "120"))

# Static files
# None means "resolve against the working directory at request time".
_static_root = os.environ.get("SPA_STATIC_ROOT")
STATIC_ROOT = Path(_static_root) if _static_root else None
INDEX_PAGE = "index.html"
DEFAULT_PAGE = "default.html"

# Security headers via flask-talisman
SECURITY_HEADERS = _env_flag("SPA_SECURITY_HEADERS", True)

# Logging
# Keep the log directory outside STATIC_ROOT or it becomes downloadable.
_log_dir = os.environ.get("SPA_LOG_DIR")
LOGS_DIR = Path(_log_dir) if _log_dir else None
LOG_LEVEL = os.environ.get("SPA_LOG_LEVEL", "INFO").upper()
