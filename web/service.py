"""HTTP service lifecycle: bind, serve, wait for a stop signal, shut down.

Typical use::

    service = Service("*", 8080)
    service.handler = create_app()
    service.middleware = LoggingMiddleware
    service.run_and_wait()

``run()`` starts a threaded werkzeug server in the background.
``wait_for_stop()`` blocks until SIGINT/SIGTERM (or ``stop()``), then runs
``cleanup()``, which notifies every registered shutdown event, calls
``shutdown_func`` and drains in-flight requests.
"""
import enum
import queue
import signal
import threading

from loguru import logger
from werkzeug.serving import WSGIRequestHandler, make_server

from config import SERVER_TIMEOUT
from web.netutil import ALL_INTERFACES, get_local_ips, is_all_interfaces

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ServiceState(enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class TimeoutRequestHandler(WSGIRequestHandler):
    """Request handler with a per-connection socket timeout.

    The socket timeout bounds every read, every write and the idle wait
    between keep-alive requests.
    """

    timeout = SERVER_TIMEOUT

    def log_request(self, code="-", size="-"):
        # Access lines come from LoggingMiddleware when it is installed.
        pass


class Service:
    def __init__(self, address, port, timeout=None):
        if not address:
            raise ValueError(
                "service address cannot be empty; use * for all available addresses"
            )
        if address == "*":
            address = ALL_INTERFACES

        self.address = address
        self.port = port
        self.timeout = SERVER_TIMEOUT if timeout is None else timeout

        # Settable by the embedding application before run()
        self.handler = _default_handler()
        self.middleware = None
        self.shutdown_func = None

        self._state = ServiceState.STOPPED
        self._state_lock = threading.Lock()
        self._shutdown_events = []
        self._shutdown_lock = threading.Lock()
        self._stop_requests = queue.SimpleQueue()
        self._stop_requested = False
        self._cleaned_up = False
        self._cleanup_lock = threading.Lock()

        self._server = None
        self._serve_thread = None

    def __repr__(self):
        return f"<Service {self.address}:{self.port} {self._state.value}>"

    @property
    def state(self):
        return self._state

    @property
    def is_running(self):
        return self._state is ServiceState.RUNNING

    @property
    def binds_all_interfaces(self):
        return is_all_interfaces(self.address)

    @property
    def bound_port(self):
        """Port actually listened on (differs from ``port`` when it was 0)."""
        if self._server is None:
            return None
        return self._server.server_address[1]

    # --- Shutdown notification ---

    def register_shutdown_event(self):
        """Return a fresh event that is set once when the service stops."""
        event = threading.Event()
        with self._shutdown_lock:
            self._shutdown_events.append(event)
        return event

    def unregister_shutdown_event(self, event):
        with self._shutdown_lock:
            for i, registered in enumerate(self._shutdown_events):
                if registered is event:
                    del self._shutdown_events[i]
                    break

    # --- Lifecycle ---

    def _swap_state(self, expected, new):
        with self._state_lock:
            if self._state is not expected:
                return False
            self._state = new
            return True

    def run(self):
        """Start serving in the background. Repeated calls are no-ops."""
        with self._cleanup_lock:
            cleaned_up = self._cleaned_up
        if cleaned_up:
            logger.warning("{!r} was already shut down; create a new Service", self)
            return
        if not self._swap_state(ServiceState.STOPPED, ServiceState.RUNNING):
            return

        app = self.handler
        if self.middleware is not None:
            app = self.middleware(app)

        handler_cls = type(
            "ServiceRequestHandler", (TimeoutRequestHandler,), {"timeout": self.timeout}
        )
        try:
            server = make_server(
                self.address, self.port, app,
                threaded=True, request_handler=handler_cls,
            )
        except (OSError, SystemExit) as e:
            # werkzeug reports bind errors itself and exits
            logger.critical("error on listen: cannot bind {}:{}", self.address, self.port)
            raise SystemExit(1) from e

        # Let server_close() wait for in-flight requests.
        server.daemon_threads = False
        server.block_on_close = True

        # cleanup() snapshots the server under the same lock, so it sees
        # either a started server or none at all.
        with self._cleanup_lock:
            cleaned_up = self._cleaned_up
            if not cleaned_up:
                self._server = server
                self._serve_thread = threading.Thread(
                    target=server.serve_forever, name="service-http", daemon=True,
                )
                self._serve_thread.start()

        if cleaned_up:
            server.server_close()
            with self._state_lock:
                self._state = ServiceState.STOPPED
            logger.warning("{!r} was shut down while starting; listener closed", self)
            return

        address = self.address
        if self.binds_all_interfaces:
            address = ", ".join(get_local_ips())
        logger.info("listening on port {} address: {}", self.bound_port, address)

    def _handle_signal(self, signum, frame):
        self._request_stop(signum)

    def _request_stop(self, signum):
        # Runs inside signal handlers: only SimpleQueue.put() is safe here.
        if self._stop_requested:
            return
        self._stop_requested = True
        self._stop_requests.put(signum)

    def wait_for_stop(self):
        """Block until SIGINT/SIGTERM or stop(), then clean up.

        Signal handlers can only be installed from the main thread; when
        called from any other thread only stop() can end the wait.
        """
        previous = {}
        if threading.current_thread() is threading.main_thread():
            for signum in STOP_SIGNALS:
                previous[signum] = signal.signal(signum, self._handle_signal)

        try:
            signum = self._stop_requests.get()
            logger.info(
                "received shutdown signal ({}), stopping the service",
                signal.Signals(signum).name,
            )
            self.cleanup()
        finally:
            with self._state_lock:
                self._state = ServiceState.STOPPED
            for signum, handler in previous.items():
                if handler is not None:
                    signal.signal(signum, handler)

    def run_and_wait(self):
        self.run()
        self.wait_for_stop()

    def stop(self):
        """Ask a pending (or the next) wait_for_stop() to return."""
        self._request_stop(signal.SIGTERM)

    def cleanup(self):
        """Notify listeners, call shutdown_func and stop the server. Runs once."""
        with self._cleanup_lock:
            if self._cleaned_up:
                logger.debug("cleanup already done for {!r}", self)
                return
            self._cleaned_up = True
            server, serve_thread = self._server, self._serve_thread

        with self._shutdown_lock:
            events = list(self._shutdown_events)
        for event in events:
            event.set()

        if self.shutdown_func is not None:
            self.shutdown_func()

        if server is not None:
            # Stop accepting, then wait (unbounded) for in-flight requests.
            server.shutdown()
            server.server_close()
            serve_thread.join()
        logger.info("service stopped")


def _default_handler():
    from web.app import create_app

    return create_app(serve_spa=False)
