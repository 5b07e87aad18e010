"""Detect responses that demand (re)authorization, and build the Bearer header.

A response requires an authorization challenge only if:

1. its status is 401 or 403, and
2. the first ``WWW-Authenticate`` header value contains ``Bearer``.

The header *name* is matched case-insensitively, as HTTP requires. The
``Bearer`` marker is a case-sensitive substring test, matching how
challenge headers are formatted in practice (``Bearer realm="x"``).

Everything here is a pure function of its arguments; nothing blocks or
touches session state.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Optional

import httpx

from authsession.exceptions import IOFailureError

BEARER = "Bearer"
"""Scheme token of the cached authorization header and the challenge marker."""

WWW_AUTHENTICATE_HEADER_NAME = "WWW-Authenticate"
AUTHORIZATION_HEADER_NAME = "Authorization"

CHALLENGE_STATUS_CODES = frozenset({401, 403})


def first_header_value(headers: Any, name: str) -> Optional[str]:
    """Return the first value of header *name*, or ``None`` when absent.

    Accepts :class:`httpx.Headers`, a plain mapping whose values are either
    a string or an ordered sequence of strings, or an
    :class:`email.message.Message` (``http.client`` response headers).
    """
    if headers is None:
        return None
    if isinstance(headers, httpx.Headers):
        values = headers.get_list(name)
        return values[0] if values else None

    target = name.lower()
    for key, value in headers.items():
        if str(key).lower() != target:
            continue
        if isinstance(value, bytes):
            return value.decode("latin-1")
        if isinstance(value, str):
            return value
        values = list(value)
        return values[0] if values else None
    return None


def is_challenge(status_code: int, www_authenticate: Optional[str]) -> bool:
    """Apply the challenge rule to a status code and a ``WWW-Authenticate`` value."""
    if status_code not in CHALLENGE_STATUS_CODES or www_authenticate is None:
        return False
    return BEARER in www_authenticate


def is_authorization_required(status_code: int, headers: Any) -> bool:
    """Check whether a status code and headers describe a Bearer challenge.

    Args:
        status_code: HTTP status of the response.
        headers: Response headers (see :func:`first_header_value`).

    Returns:
        ``True`` if the status is 401 or 403 and the first
        ``WWW-Authenticate`` value contains ``Bearer``. A missing header is
        ``False``, never an error.
    """
    return is_challenge(status_code, first_header_value(headers, WWW_AUTHENTICATE_HEADER_NAME))


def read_response_metadata(response: Any) -> tuple[int, Any]:
    """Read the status code and headers from a response-like object.

    Supports :class:`httpx.Response` (``status_code``) and
    :class:`http.client.HTTPResponse` (``status``).

    Raises:
        IOFailureError: If the status line or headers cannot be read.
    """
    try:
        status = getattr(response, "status_code", None)
        if status is None:
            status = getattr(response, "status", None)
        headers = response.headers
    except (httpx.HTTPError, OSError, AttributeError) as exc:
        raise IOFailureError(f"Cannot read response metadata: {exc}") from exc
    if not isinstance(status, int):
        raise IOFailureError("Response has no readable status code")
    return status, headers


def is_authorization_required_for_response(response: Any) -> bool:
    """Apply :func:`is_authorization_required` to a response object.

    Raises:
        IOFailureError: If the response's status line cannot be read. The
            caller may retry or treat the response as not requiring
            authorization.
    """
    status, headers = read_response_metadata(response)
    return is_authorization_required(status, headers)


def format_authorization_header(
    access_token: Optional[str], id_token: Optional[str]
) -> Optional[str]:
    """Build ``Bearer <access_token> <id_token>``, or ``None`` if either is empty."""
    if not access_token or not id_token:
        return None
    return f"{BEARER} {access_token} {id_token}"


def add_authorization_header(target: Any, header: Optional[str]) -> None:
    """Set the ``Authorization`` header on an outgoing request representation.

    *target* may be anything exposing a mutable ``headers`` mapping
    (:class:`httpx.Request`, :class:`httpx.Client`) or a mutable mapping
    itself. A ``None`` header leaves *target* untouched.
    """
    if header is None:
        return
    headers = getattr(target, "headers", target)
    if not isinstance(headers, MutableMapping):
        raise TypeError(f"Cannot set headers on {type(target).__name__}")
    headers[AUTHORIZATION_HEADER_NAME] = header
