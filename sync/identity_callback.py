"""
Local HTTP callback server for third-party identity sign-in.

Starts a temporary localhost server, opens the browser on the identity
provider page, and captures the identity token when the provider
redirects back.

Flow:
1. Bind an http.server to a free loopback port
2. Open browser to <provider>/auth/identity?port=<port>
3. User signs in with the provider
4. Provider redirects to http://localhost:<port>/auth/callback?identity_token=...
5. Server captures token (plus optional email/name) and returns success HTML
6. Server shuts down
"""

import logging
import threading
import webbrowser
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Callable, Dict, Optional
from urllib.parse import urlparse, parse_qs

logger = logging.getLogger(__name__)

# Seconds the user has to finish signing in with the provider
_AUTH_TIMEOUT = 300


_SUCCESS_PAGE = (
    "<!DOCTYPE html><html><head><title>Smart Study Planner</title></head>"
    "<body style=\"font-family: sans-serif; text-align: center; padding-top: 20vh\">"
    "<h1>You're signed in!</h1>"
    "<p>You can close this tab and return to Smart Study Planner.</p>"
    "</body></html>"
).encode("utf-8")


class _CallbackServer(HTTPServer):
    """HTTPServer that holds the captured identity result."""

    def __init__(self, address) -> None:
        super().__init__(address, _IdentityCallbackHandler)
        self.identity_result: Dict[str, str] = {}
        self.received = threading.Event()


class _IdentityCallbackHandler(BaseHTTPRequestHandler):
    """Captures the provider redirect; also answers /health."""

    server: _CallbackServer

    def _reply(self, status: int, body: bytes = b"", content_type: str = "text/plain") -> None:
        self.send_response(status)
        if body:
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def do_GET(self) -> None:
        url = urlparse(self.path)
        if url.path == "/health":
            self._reply(200, b"ok")
            return
        if url.path != "/auth/callback":
            self._reply(404)
            return

        query = {key: values[0] for key, values in parse_qs(url.query).items()}
        identity_token = query.get("identity_token")
        if identity_token:
            self.server.identity_result = {
                "identity_token": identity_token,
                "email": query.get("email", ""),
                "name": query.get("name", ""),
            }
            logger.info(f"Identity callback received for: {query.get('email') or 'unknown'}")
            self._reply(200, _SUCCESS_PAGE, "text/html; charset=utf-8")
        else:
            self.server.identity_result = {}
            logger.warning("Identity callback missing token")
            self._reply(400, b"Missing identity token. Please try signing in again.")

        self.server.received.set()

    def log_message(self, format, *args) -> None:
        logger.debug(f"Identity server: {format % args}")


def run_identity_callback_server(
    provider_url: str,
    timeout: float = _AUTH_TIMEOUT,
    open_browser: Callable[[str], object] = webbrowser.open,
) -> Optional[Dict[str, str]]:
    """
    Run the local callback server and open the provider sign-in page.

    Blocks until the callback is received or timeout is reached.

    Args:
        provider_url: Base URL of the identity provider page.
        timeout: Seconds to wait for the redirect.
        open_browser: Opens the sign-in URL (tests replace it).

    Returns:
        Dict with identity_token, email, name on success.
        None on timeout or failure.
    """
    # Port 0 lets the OS pick a free loopback port
    server = _CallbackServer(("127.0.0.1", 0))
    port = server.server_address[1]
    serve_thread = threading.Thread(
        target=server.serve_forever, kwargs={"poll_interval": 0.5}, daemon=True
    )
    serve_thread.start()
    logger.info(f"Identity callback server listening on port {port}")

    sign_in_url = f"{provider_url.rstrip('/')}/auth/identity?port={port}"
    logger.info(f"Opening browser for sign-in: {sign_in_url}")
    try:
        open_browser(sign_in_url)
        received = server.received.wait(timeout=timeout)
    finally:
        server.shutdown()
        server.server_close()

    result = server.identity_result
    if received and result.get("identity_token"):
        logger.info("Identity sign-in completed")
        return dict(result)

    logger.warning("Identity sign-in timed out or failed")
    return None
