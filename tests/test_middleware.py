"""Tests for the request logging middleware.

Run: pytest tests/test_middleware.py -v
Markers: middleware
"""
import pytest
from werkzeug.test import EnvironBuilder

from web.middleware import LoggingMiddleware, client_ip, log_request, request_url

pytestmark = [pytest.mark.middleware]


def _environ(path="/", **kwargs):
    return EnvironBuilder(path=path, **kwargs).get_environ()


class TestClientIp:
    def test_remote_addr(self):
        env = _environ(environ_base={"REMOTE_ADDR": "10.1.2.3"})
        assert client_ip(env) == "10.1.2.3"

    def test_real_ip_header_wins(self):
        env = _environ(
            headers={"X-Real-IP": "203.0.113.5"},
            environ_base={"REMOTE_ADDR": "10.1.2.3"},
        )
        assert client_ip(env) == "203.0.113.5"

    def test_empty_real_ip_header_ignored(self):
        env = _environ(
            headers={"X-Real-IP": ""},
            environ_base={"REMOTE_ADDR": "10.1.2.3"},
        )
        assert client_ip(env) == "10.1.2.3"

    def test_strips_port_from_remote_addr(self):
        env = _environ(environ_base={"REMOTE_ADDR": "10.1.2.3:5555"})
        assert client_ip(env) == "10.1.2.3"

    def test_ipv6_remote_addr(self):
        env = _environ(environ_base={"REMOTE_ADDR": "::1"})
        assert client_ip(env) == "::1"
        env = _environ(environ_base={"REMOTE_ADDR": "[2001:db8::1]:443"})
        assert client_ip(env) == "2001:db8::1"


class TestRequestUrl:
    def test_path_only(self):
        assert request_url(_environ("/about")) == "/about"

    def test_with_query(self):
        assert request_url(_environ("/search", query_string="q=spa&page=2")) == "/search?q=spa&page=2"


class TestLogRequest:
    def test_log_line(self, log_messages):
        env = _environ("/blog", method="GET", environ_base={"REMOTE_ADDR": "10.1.2.3"})
        log_request(env)
        assert log_messages == ["[http] 10.1.2.3 GET /blog"]


class TestLoggingMiddleware:
    def test_logs_after_handling(self, app, log_messages):
        app.wsgi_app = LoggingMiddleware(app.wsgi_app)
        r = app.test_client().get("/about", environ_base={"REMOTE_ADDR": "10.9.8.7"})
        assert r.status_code == 200
        assert "[http] 10.9.8.7 GET /about" in log_messages

    def test_logs_real_ip_override(self, app, log_messages):
        app.wsgi_app = LoggingMiddleware(app.wsgi_app)
        app.test_client().get(
            "/",
            headers={"X-Real-IP": "203.0.113.5"},
            environ_base={"REMOTE_ADDR": "10.9.8.7"},
        )
        http_lines = [m for m in log_messages if m.startswith("[http]")]
        assert http_lines == ["[http] 203.0.113.5 GET /"]

    def test_wrapped_app_runs_before_logging(self, log_messages):
        order = []

        def inner(environ, start_response):
            order.append("handled")
            start_response("204 No Content", [])
            return [b""]

        def start_response(status, headers):
            order.append(status)

        LoggingMiddleware(inner)(_environ("/ping", method="POST"), start_response)
        assert order == ["handled", "204 No Content"]
        assert log_messages[-1].endswith("POST /ping")

    def test_passes_response_through(self):
        def inner(environ, start_response):
            start_response("200 OK", [("Content-Type", "text/plain")])
            return [b"ok"]

        body = LoggingMiddleware(inner)(_environ(), lambda *a: None)
        assert list(body) == [b"ok"]
