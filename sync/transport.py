"""
Shared HTTP plumbing for the remote services.

One call to send_json() is exactly one request: no retries, no caching,
httpx's default timeout. Outcomes are normalised into the error taxonomy
in core.errors before any body is parsed.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional, TypeVar

import httpx

from core.errors import (
    DecodeError,
    EmptyResponse,
    NetworkError,
    StudyPlannerError,
    error_for_status,
)
from core.models import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_http_client(transport: Optional[httpx.BaseTransport] = None) -> httpx.Client:
    """
    Create the httpx client shared by a service.

    Args:
        transport: Optional transport override (tests pass httpx.MockTransport).
    """
    if transport is not None:
        return httpx.Client(transport=transport)
    return httpx.Client()


def send_json(
    client: httpx.Client,
    method: str,
    url: str,
    body: Optional[Dict[str, Any]] = None,
    token: Optional[str] = None,
    params: Optional[Dict[str, str]] = None,
    expect_body: bool = True,
) -> Any:
    """
    Send one request and return the decoded JSON body.

    Args:
        client: httpx client to send with.
        method: HTTP method.
        url: Absolute URL.
        body: JSON body (serialised with Content-Type: application/json).
        token: Bearer token for authenticated endpoints.
        params: Query parameters.
        expect_body: False for endpoints whose success body is ignored.

    Returns:
        Parsed JSON, or None when expect_body is False.

    Raises:
        NetworkError: No HTTP response was received.
        APIError: Mapped from a non-2xx status.
        EmptyResponse: 2xx with no body.
        DecodeError: 2xx body is not JSON.
    """
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    logger.info(f"Sending {method} request to: {url}")
    try:
        if body is not None:
            headers["Content-Type"] = "application/json"
            response = client.request(method, url, json=body, headers=headers, params=params)
        else:
            response = client.request(method, url, headers=headers, params=params)
    except httpx.RequestError as e:
        logger.warning(f"Network error for {method} {url}: {e}")
        raise NetworkError(cause=e)

    logger.debug(f"HTTP response status: {response.status_code}")
    error = error_for_status(response.status_code)
    if error is not None:
        logger.warning(f"{method} {url} failed with status {response.status_code}")
        raise error

    if not expect_body:
        return None

    text = response.text
    if not text.strip():
        logger.warning(f"No data received from {url}")
        raise EmptyResponse(status_code=response.status_code)

    try:
        return response.json()
    except ValueError:
        raise DecodeError("Response is not valid JSON", raw_body=text,
                          status_code=response.status_code)


def run_in_background(
    operation: Callable[[], T],
    completion: Callable[[Result[T]], None],
    cancel_event: Optional[threading.Event] = None,
    name: str = "request",
) -> threading.Thread:
    """
    Run a blocking operation on a daemon thread and report a Result.

    The completion runs on the worker thread; UI layers marshal it onto
    their own loop. If cancel_event is set before the operation finishes,
    the completion is not called.

    Returns:
        The started thread (callers may join it).
    """
    def _worker() -> None:
        try:
            result: Result[T] = Result(value=operation())
        except StudyPlannerError as e:
            result = Result(error=e)

        if cancel_event is not None and cancel_event.is_set():
            logger.debug(f"{name} cancelled - dropping result")
            return
        completion(result)

    thread = threading.Thread(target=_worker, daemon=True, name=name)
    thread.start()
    return thread
