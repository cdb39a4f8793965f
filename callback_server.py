"""Local OAuth callback listener shared by the Deezer and Spotify logins.

Both providers redirect the browser to http://127.0.0.1:<port>/<Provider>?code=...
The listener runs in a background thread, stores each provider's code in its
CodeSlot (first code wins), and stops once every provider has called back or
when the orchestrator calls stop().

Every request gets the same short 200 response: matched or not, any method,
even an unparsable request line. Only GET and POST can deliver a code.
"""

import sys
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlsplit

from errors import ListenerBindError
from log_setup import get_logger

log = get_logger("callback")

PROVIDERS = ("Deezer", "Spotify")

RESPONSE_BODY = "You're connected, you can close this tab now!".encode("utf-8")
CONTENT_LENGTH = 45  # bytes in RESPONSE_BODY

ACCEPT_TIMEOUT = 0.5       # how often the accept loop re-checks for stop()
CONNECTION_TIMEOUT = 5     # drop clients that connect but never send a request


class CodeSlot:
    """Single-assignment holder for one provider's authorization code.

    Written by the listener thread, polled by the login waiter. A second
    set() is ignored and reported by returning False.
    """

    def __init__(self, provider):
        self.provider = provider
        self._lock = threading.Lock()
        self._code = None

    def set(self, code):
        with self._lock:
            if self._code is not None:
                return False
            self._code = code
            return True

    def get(self):
        """Return the code, or None if the callback has not arrived yet."""
        with self._lock:
            return self._code

    def is_set(self):
        return self.get() is not None

    def __repr__(self):
        state = "set" if self.is_set() else "empty"
        return f"<CodeSlot {self.provider} {state}>"


class CompletionTracker:
    """Per-provider "code received" flags; `done` fires once all are set."""

    def __init__(self, providers=PROVIDERS):
        self._lock = threading.Lock()
        self._flags = {p: False for p in providers}
        self.done = threading.Event()

    def mark(self, provider):
        with self._lock:
            self._flags[provider] = True
            if all(self._flags.values()):
                self.done.set()

    def is_marked(self, provider):
        with self._lock:
            return self._flags[provider]

    def is_complete(self):
        return self.done.is_set()


def new_slots(providers=PROVIDERS):
    """Fresh {provider: CodeSlot} mapping for one run."""
    return {p: CodeSlot(p) for p in providers}


class _CallbackHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    server_version = "deezer2spotify"
    timeout = CONNECTION_TIMEOUT

    def do_GET(self):
        # Capture first: a browser that hangs up early must not lose its code.
        self.server.owner.dispatch(self.path)
        self._reply()

    do_POST = do_GET

    def send_error(self, code, message=None, explain=None):
        # Other methods and unparsable requests get the same reply, with no state change.
        log.debug(f"Non-callback request from {self.address_string()}: {code} {message or ''}".rstrip())
        self.request_version = self.protocol_version
        self._reply()

    def _reply(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(CONTENT_LENGTH))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(RESPONSE_BODY)
        self.close_connection = True

    def log_message(self, format, *args):  # noqa: A002
        log.debug(f"{self.address_string()} {format % args}")

    def log_error(self, format, *args):  # noqa: A002
        log.warning(f"Callback request from {self.address_string()} failed: {format % args}")


class _Listener(HTTPServer):
    allow_reuse_address = True
    timeout = ACCEPT_TIMEOUT

    def __init__(self, address, owner):
        self.owner = owner
        super().__init__(address, _CallbackHandler)

    def handle_error(self, request, client_address):
        # One broken connection never takes the accept loop down.
        err = sys.exc_info()[1]
        log.warning(f"Dropped callback connection from {client_address[0]}: {err!r}")
        log.debug("Connection error details", exc_info=True)


class CallbackServer:
    """Background HTTP listener that routes OAuth redirects into CodeSlots.

    Usage:
        slots = new_slots()
        tracker = CompletionTracker()
        with CallbackServer(slots, tracker, port=8080) as server:
            ...  # wait on slots["Deezer"], slots["Spotify"]

    start() binds and returns immediately; the accept loop ends when the
    tracker reports every provider done, or on stop().
    """

    def __init__(self, slots, tracker, host="127.0.0.1", port=8080):
        self.slots = slots
        self.tracker = tracker
        self.host = host
        self.port = port
        self._stop = threading.Event()
        self._httpd = None
        self._thread = None

    @property
    def address(self):
        """(host, port) actually bound; useful with port=0."""
        if self._httpd is None:
            return self.host, self.port
        return self._httpd.server_address[:2]

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self._thread is not None:
            raise RuntimeError("callback listener already started")
        try:
            self._httpd = _Listener((self.host, self.port), self)
        except OSError as e:
            raise ListenerBindError(self.host, self.port, e) from e

        host, port = self.address
        log.debug(f"Listening for OAuth callbacks on {host}:{port}")
        self._thread = threading.Thread(target=self._serve, name="oauth-callback", daemon=True)
        self._thread.start()
        return self

    def _serve(self):
        try:
            while not self._stop.is_set() and not self.tracker.is_complete():
                self._httpd.handle_request()
            if self.tracker.is_complete():
                log.debug("All providers connected, closing callback listener")
        finally:
            self._httpd.server_close()

    def dispatch(self, path):
        """Route one request path; store the code if it is a provider callback."""
        url = urlsplit(path)
        provider = self._route(url.path)
        if provider is None:
            log.debug(f"Ignoring request for {url.path}")
            return None

        params = parse_qs(url.query)
        code = params.get("code", [""])[0]
        if not code:
            reason = (params.get("error") or params.get("error_reason") or ["no code in callback"])[0]
            log.warning(f"{provider} redirected back without an authorization code ({reason})")
            return None

        if self.slots[provider].set(code):
            log.debug(f"Received {provider} authorization code")
        else:
            log.debug(f"Ignoring duplicate {provider} callback")
        self.tracker.mark(provider)
        return provider

    def _route(self, path):
        for provider in self.slots:
            if path.startswith(f"/{provider}"):
                return provider
        return None

    def stop(self, timeout=5):
        """Ask the accept loop to exit and wait for the socket to close."""
        self._stop.set()
        self.join(timeout)

    def join(self, timeout=None):
        if self._thread is not None:
            self._thread.join(timeout)

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
