"""Tests for Bearer challenge detection and header helpers."""

from __future__ import annotations

import http.client
import io
from itertools import product

import httpx
import pytest

from authsession.auth.detector import (
    add_authorization_header,
    first_header_value,
    format_authorization_header,
    is_authorization_required,
    is_authorization_required_for_response,
)
from authsession.exceptions import IOFailureError


# ---------------------------------------------------------------------------
# is_authorization_required
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("status_code", "header_present", "has_bearer"),
    list(product([401, 403, 200, 500], [True, False], [True, False])),
)
def test_challenge_boundary(status_code: int, header_present: bool, has_bearer: bool) -> None:
    value = 'Bearer realm="x"' if has_bearer else 'Basic realm="x"'
    headers = {"WWW-Authenticate": [value]} if header_present else {}
    expected = status_code in (401, 403) and header_present and has_bearer
    assert is_authorization_required(status_code, headers) is expected


class TestIsAuthorizationRequired:
    def test_scenario_401_bearer(self) -> None:
        headers = {"WWW-Authenticate": ['Bearer realm="x"']}
        assert is_authorization_required(401, headers) is True

    def test_scenario_401_no_headers(self) -> None:
        assert is_authorization_required(401, {}) is False

    def test_scenario_500_bearer(self) -> None:
        assert is_authorization_required(500, {"WWW-Authenticate": ["Bearer"]}) is False

    def test_header_name_is_case_insensitive(self) -> None:
        assert is_authorization_required(401, {"www-authenticate": ["Bearer"]}) is True

    def test_bearer_marker_is_case_sensitive(self) -> None:
        assert is_authorization_required(401, {"WWW-Authenticate": ["bearer"]}) is False

    def test_only_first_value_is_considered(self) -> None:
        headers = {"WWW-Authenticate": ['Basic realm="a"', 'Bearer realm="b"']}
        assert is_authorization_required(401, headers) is False

    def test_string_value(self) -> None:
        assert is_authorization_required(403, {"WWW-Authenticate": "Bearer scope=x"}) is True

    def test_empty_value_list(self) -> None:
        assert is_authorization_required(401, {"WWW-Authenticate": []}) is False

    def test_none_headers(self) -> None:
        assert is_authorization_required(401, None) is False

    def test_httpx_headers_multi_value(self) -> None:
        headers = httpx.Headers(
            [("WWW-Authenticate", 'Bearer realm="a"'), ("WWW-Authenticate", "Basic")]
        )
        assert first_header_value(headers, "www-authenticate") == 'Bearer realm="a"'
        assert is_authorization_required(401, headers) is True


# ---------------------------------------------------------------------------
# Response-based detection
# ---------------------------------------------------------------------------


class TestResponseDetection:
    def test_httpx_response(self) -> None:
        response = httpx.Response(401, headers={"WWW-Authenticate": 'Bearer realm="x"'})
        assert is_authorization_required_for_response(response) is True

    def test_httpx_response_without_challenge(self) -> None:
        assert is_authorization_required_for_response(httpx.Response(401)) is False

    def test_http_client_response(self) -> None:
        raw = (
            b"HTTP/1.1 403 Forbidden\r\n"
            b"WWW-Authenticate: Bearer error=\"insufficient_scope\"\r\n"
            b"Content-Length: 0\r\n\r\n"
        )

        class FakeSocket:
            def makefile(self, mode: str) -> io.BytesIO:
                return io.BytesIO(raw)

        response = http.client.HTTPResponse(FakeSocket())  # type: ignore[arg-type]
        response.begin()
        assert is_authorization_required_for_response(response) is True

    def test_unreadable_status_raises_io_failure(self) -> None:
        class BrokenConnection:
            @property
            def status_code(self) -> int:
                raise OSError("connection reset")

            headers: dict[str, str] = {}

        with pytest.raises(IOFailureError):
            is_authorization_required_for_response(BrokenConnection())

    def test_missing_status_raises_io_failure(self) -> None:
        class NoStatus:
            headers: dict[str, str] = {}

        with pytest.raises(IOFailureError):
            is_authorization_required_for_response(NoStatus())

    def test_io_failure_is_an_os_error(self) -> None:
        with pytest.raises(OSError):
            is_authorization_required_for_response(object())


# ---------------------------------------------------------------------------
# Header helpers
# ---------------------------------------------------------------------------


class TestFormatAuthorizationHeader:
    def test_both_tokens(self) -> None:
        assert format_authorization_header("a", "b") == "Bearer a b"

    @pytest.mark.parametrize(("access", "id_token"), [(None, "b"), ("a", None), ("", "b"), (None, None)])
    def test_missing_token(self, access, id_token) -> None:
        assert format_authorization_header(access, id_token) is None


class TestAddAuthorizationHeader:
    def test_httpx_request(self) -> None:
        request = httpx.Request("GET", "https://api.example.com/")
        add_authorization_header(request, "Bearer a b")
        assert request.headers["Authorization"] == "Bearer a b"

    def test_httpx_client(self) -> None:
        with httpx.Client() as client:
            add_authorization_header(client, "Bearer a b")
            assert client.headers["authorization"] == "Bearer a b"

    def test_plain_dict(self) -> None:
        headers: dict[str, str] = {}
        add_authorization_header(headers, "Bearer a b")
        assert headers == {"Authorization": "Bearer a b"}

    def test_none_header_is_noop(self) -> None:
        request = httpx.Request("GET", "https://api.example.com/")
        add_authorization_header(request, None)
        assert "Authorization" not in request.headers

    def test_unsupported_target(self) -> None:
        with pytest.raises(TypeError):
            add_authorization_header(object(), "Bearer a b")
