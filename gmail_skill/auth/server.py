"""Local OAuth callback server."""

from __future__ import annotations

import logging
import socket
import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable

from gmail_skill.auth.constants import CALLBACK_PATH, FAILURE_HTML, SUCCESS_HTML
from gmail_skill.auth.errors import CsrfMismatchError, PortInUseError, ProviderDeniedError
from gmail_skill.auth.state import parse_callback_query, state_matches

logger = logging.getLogger(__name__)


class _OAuthHandler(BaseHTTPRequestHandler):
    """Local callback HTTP handler."""

    server_version = "GmailSkillOAuth/1.0"
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:  # noqa: N802
        url = urllib.parse.urlparse(self.path)
        if url.path != CALLBACK_PATH:
            self._respond(404, b"Not found", "text/plain; charset=utf-8")
            return

        code, state, error = parse_callback_query(url.query)

        # State is checked before anything else in the callback is trusted.
        if not state_matches(self.server.expected_state, state):
            logger.warning("OAuth callback rejected: state mismatch")
            self._fail(CsrfMismatchError("OAuth state mismatch; the callback did not come from this login attempt."))
            return

        if error:
            self._fail(ProviderDeniedError(f"Authorization was denied by Google: {error}"))
            return

        if not code:
            self._fail(ProviderDeniedError("Authorization callback did not include a code."))
            return

        self.server.code = code
        self._respond(200, SUCCESS_HTML.encode("utf-8"))
        self.server.on_code(code)

    def _fail(self, exc: Exception) -> None:
        self._respond(400, FAILURE_HTML.encode("utf-8"))
        self.server.on_error(exc)

    def _respond(self, status: int, body: bytes, content_type: str = "text/html; charset=utf-8") -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body)
        self.wfile.flush()
        self.close_connection = True

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A003
        # The request line carries the code and state.
        return


class _OAuthServer(HTTPServer):
    """OAuth callback server with state."""

    def __init__(
        self,
        server_address: tuple[Any, ...],
        expected_state: str,
        on_code: Callable[[str], None],
        on_error: Callable[[Exception], None],
    ):
        super().__init__(server_address, _OAuthHandler)
        self.expected_state = expected_state
        self.code: str | None = None
        self.on_code = on_code
        self.on_error = on_error


def _start_local_server(
    state: str,
    port: int,
    on_code: Callable[[str], None],
    on_error: Callable[[Exception], None],
) -> _OAuthServer:
    """Start the callback server on the first localhost address that binds."""
    try:
        addrinfos = socket.getaddrinfo("localhost", port, type=socket.SOCK_STREAM)
    except OSError as exc:
        raise PortInUseError(f"Failed to resolve localhost: {exc}") from exc

    last_error: OSError | None = None
    for family, _socktype, _proto, _canonname, sockaddr in addrinfos:
        try:
            # localhost may resolve to ::1 first; bind whichever family works.
            class _AddrOAuthServer(_OAuthServer):
                address_family = family

            server = _AddrOAuthServer(sockaddr, state, on_code=on_code, on_error=on_error)
        except OSError as exc:
            last_error = exc
            continue
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        logger.debug("OAuth callback server listening on %s", sockaddr)
        return server

    raise PortInUseError(f"Local callback server could not listen on port {port}: {last_error}")
