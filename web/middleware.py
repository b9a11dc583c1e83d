"""WSGI request logging.

``LoggingMiddleware`` wraps any WSGI app (usually assigned to
``Service.middleware``) and writes one access line per request once the
wrapped app has handled it.
"""
from loguru import logger

REAL_IP_HEADER = "HTTP_X_REAL_IP"


def client_ip(environ):
    """Client address for logging: ``X-Real-IP`` wins over the socket peer."""
    real_ip = environ.get(REAL_IP_HEADER, "").strip()
    if real_ip:
        return real_ip
    remote = environ.get("REMOTE_ADDR", "")
    # Some servers hand over "host:port"; bare IPv6 addresses contain colons too.
    if remote.count(":") == 1:
        remote = remote.split(":", 1)[0]
    elif remote.startswith("[") and "]" in remote:
        remote = remote[1:remote.index("]")]
    return remote


def request_url(environ):
    """Request path plus query string, as the client sent it."""
    url = environ.get("PATH_INFO", "") or "/"
    query = environ.get("QUERY_STRING", "")
    if query:
        url = f"{url}?{query}"
    return url


def log_request(environ):
    logger.info(
        "[http] {} {} {}",
        client_ip(environ), environ.get("REQUEST_METHOD", ""), request_url(environ),
    )


class LoggingMiddleware:
    """Log every request after the wrapped app produced its response."""

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        response = self.app(environ, start_response)
        log_request(environ)
        return response
