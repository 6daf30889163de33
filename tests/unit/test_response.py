"""
Unit tests for HTTP response building and serialization.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from embedserve.body import ByteStreamBody
from embedserve.http import (
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    ResponseBuilder,
    error_response,
    format_http_date,
    is_not_modified,
    not_found,
    not_modified,
    parse_http_date,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test the status line format."""
        response = HTTPResponse(status=HTTPStatus.TEMPORARY_REDIRECT)

        assert response.status_line == "HTTP/1.1 307 Temporary Redirect"

    def test_head_bytes_adds_standard_headers(self):
        """Test Content-Length, Date and Server are added."""
        response = HTTPResponse(body=b"hello", headers={"Content-Type": "text/plain"})

        head = response.head_bytes().decode()

        assert head.startswith("HTTP/1.1 200 OK\r\n")
        assert "Content-Type: text/plain\r\n" in head
        assert "Content-Length: 5\r\n" in head
        assert "Date: " in head
        assert "Server: embedserve\r\n" in head
        assert head.endswith("\r\n\r\n")

    def test_streamed_content_length_does_not_drain(self):
        """Test that Content-Length of a streamed body leaves it unread."""
        body = ByteStreamBody(b"x" * 100, chunk_size=10)
        response = HTTPResponse(body=body)

        head = response.head_bytes().decode()

        assert "Content-Length: 100\r\n" in head
        assert body.remaining == 100

    def test_no_content_length_for_304(self):
        """Test that statuses without a body get no Content-Length."""
        head = not_modified().head_bytes().decode()

        assert "Content-Length" not in head

    def test_existing_headers_win(self):
        """Test that handler-set Server and Date are kept."""
        response = HTTPResponse(headers={"server": "custom", "date": "fixed"})

        head = response.head_bytes(server_name="other").decode()

        assert "server: custom\r\n" in head
        assert "date: fixed\r\n" in head
        assert "Server: other" not in head

    def test_iter_bytes_streams_chunks(self):
        """Test that the head is followed by every body chunk."""
        response = HTTPResponse(body=ByteStreamBody(b"abcdef", chunk_size=4))

        parts = list(response.iter_bytes())

        assert parts[0].startswith(b"HTTP/1.1 200 OK")
        assert parts[1:] == [b"abcd", b"ef"]

    def test_iter_bytes_without_body(self):
        """Test that HEAD-style serialization still announces the length."""
        response = HTTPResponse(body=ByteStreamBody(b"abcdef"))

        parts = list(response.iter_bytes(include_body=False))

        assert len(parts) == 1
        assert b"Content-Length: 6\r\n" in parts[0]

    def test_to_bytes(self):
        """Test whole-response serialization."""
        data = HTTPResponse(body=b"hi").to_bytes()

        assert data.endswith(b"\r\n\r\nhi")

    def test_get_header_case_insensitive(self):
        """Test header lookups ignore case."""
        response = HTTPResponse(headers={"Content-Type": "text/css"})

        assert response.get_header("content-type") == "text/css"
        assert response.has_header("CONTENT-TYPE") is True
        assert response.get_header("missing") is None

    def test_read_body(self):
        """Test reading bytes and streamed bodies."""
        assert HTTPResponse(body=b"abc").read_body() == b"abc"
        assert HTTPResponse(body=ByteStreamBody(b"abc", 1)).read_body() == b"abc"
        assert HTTPResponse().read_body() == b""


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_build_streamed(self):
        """Test building a streamed response."""
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/css")
            .stream(b"body {}", chunk_size=3)
            .build())

        assert response.is_streaming is True
        assert response.body.chunk_size == 3
        assert response.get_header("Content-Type") == "text/css"

    def test_json_response(self):
        """Test JSON response building."""
        response = ResponseBuilder().json({"ok": True}).build()

        assert response.get_header("Content-Type") == "application/json"
        assert json.loads(response.body) == {"ok": True}

    def test_redirect(self):
        """Test redirect defaults to 307."""
        response = ResponseBuilder().redirect("/docs/").build()

        assert response.status == HTTPStatus.TEMPORARY_REDIRECT
        assert response.get_header("Location") == "/docs/"

    def test_last_modified(self):
        """Test the Last-Modified header format."""
        modified = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        response = ResponseBuilder().last_modified(modified).build()

        assert response.get_header("Last-Modified") == "Thu, 01 Jan 2026 12:00:00 GMT"

    def test_string_body_is_encoded(self):
        """Test that a str body becomes UTF-8 bytes."""
        response = ResponseBuilder().body("héllo").build()

        assert response.body == "héllo".encode("utf-8")


class TestShortcuts:
    """Tests for response helper functions."""

    def test_not_found_is_empty(self):
        """Test the 404 shortcut has no headers or body."""
        response = not_found()

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.headers == {}
        assert response.body == b""

    def test_error_response(self):
        """Test the JSON error body."""
        response = error_response(HTTPStatus.REQUEST_TIMEOUT)

        assert json.loads(response.body) == {"error": "Request Timeout"}

    def test_error_response_with_message(self):
        """Test a custom error message."""
        response = error_response(400, "bad")

        assert response.status == HTTPStatus.BAD_REQUEST
        assert json.loads(response.body) == {"error": "bad"}


class TestHTTPStatus:
    """Tests for HTTPStatus helpers."""

    def test_categories(self):
        """Test status classification."""
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.TEMPORARY_REDIRECT.is_redirect
        assert HTTPStatus.NOT_FOUND.is_error
        assert not HTTPStatus.NOT_MODIFIED.is_error

    @pytest.mark.parametrize("status, allowed", [
        (HTTPStatus.OK, True),
        (HTTPStatus.NOT_FOUND, True),
        (HTTPStatus.NO_CONTENT, False),
        (HTTPStatus.NOT_MODIFIED, False),
    ])
    def test_allows_body(self, status, allowed):
        """Test which statuses may carry a body."""
        assert status.allows_body is allowed


class TestHTTPDates:
    """Tests for HTTP-date formatting and parsing."""

    def test_format(self):
        """Test IMF-fixdate output."""
        dt = datetime(1994, 11, 6, 8, 49, 37, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Sun, 06 Nov 1994 08:49:37 GMT"

    def test_format_converts_to_utc(self):
        """Test that an aware non-UTC time is shifted to GMT."""
        dt = datetime(1994, 11, 6, 10, 49, 37, tzinfo=timezone(timedelta(hours=2)))

        assert format_http_date(dt) == "Sun, 06 Nov 1994 08:49:37 GMT"

    @pytest.mark.parametrize("value", [
        "Sun, 06 Nov 1994 08:49:37 GMT",
        "Sunday, 06-Nov-94 08:49:37 GMT",
        "Sun Nov  6 08:49:37 1994",
    ])
    def test_parse_all_formats(self, value):
        """Test the three accepted HTTP-date forms."""
        expected = datetime(1994, 11, 6, 8, 49, 37, tzinfo=timezone.utc)

        assert parse_http_date(value) == expected

    @pytest.mark.parametrize("value", ["", "yesterday", "Sun, 99 Foo 1994"])
    def test_parse_invalid(self, value):
        """Test that garbage parses to None instead of raising."""
        assert parse_http_date(value) is None


class TestIsNotModified:
    """Tests for the If-Modified-Since decision."""

    MODIFIED = datetime(2026, 1, 1, 12, 0, 0, 750000, tzinfo=timezone.utc)

    def _request(self, method="GET", **headers):
        return HTTPRequest(method=method, headers=headers)

    def test_equal_second_is_not_modified(self):
        """Test sub-second mtime still matches its own HTTP-date."""
        request = self._request(**{"if-modified-since": "Thu, 01 Jan 2026 12:00:00 GMT"})

        assert is_not_modified(request, self.MODIFIED) is True

    def test_newer_file_is_modified(self):
        """Test a file changed after the client's copy."""
        request = self._request(**{"if-modified-since": "Thu, 01 Jan 2026 11:00:00 GMT"})

        assert is_not_modified(request, self.MODIFIED) is False

    def test_without_header(self):
        """Test that no condition means no 304."""
        assert is_not_modified(self._request(), self.MODIFIED) is False

    def test_unknown_mtime(self):
        """Test that a file without metadata is always sent."""
        request = self._request(**{"if-modified-since": "Thu, 01 Jan 2026 12:00:00 GMT"})

        assert is_not_modified(request, None) is False

    def test_naive_mtime_is_utc(self):
        """Test that a naive modification time is compared as UTC."""
        request = self._request(**{"if-modified-since": "Thu, 01 Jan 2026 12:00:00 GMT"})

        assert is_not_modified(request, datetime(2026, 1, 1, 12, 0, 0)) is True

    def test_put_is_never_conditional(self):
        """Test that only GET and HEAD qualify."""
        request = self._request("PUT", **{"if-modified-since": "Thu, 01 Jan 2026 12:00:00 GMT"})

        assert is_not_modified(request, self.MODIFIED) is False
