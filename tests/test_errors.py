"""Tests for the error taxonomy."""

import httpx
import pytest

from repo_to_text.errors import (
    AuthError,
    FetchError,
    NoSelectionError,
    NotFoundError,
    RateLimitError,
    classify_response,
    format_failure,
)


def _response(status, **headers):
    return httpx.Response(status, headers=headers)


class TestClassifyResponse:
    """Tests for status code classification."""

    def test_rate_limit_with_zero_remaining(self):
        """Test 403 with exhausted quota maps to RateLimitError."""
        error = classify_response(_response(403, **{"X-RateLimit-Remaining": "0"}))

        assert isinstance(error, RateLimitError)
        assert "rate limit" in str(error)

    def test_forbidden_with_quota_left(self):
        """Test 403 with remaining quota is a generic FetchError."""
        error = classify_response(_response(403, **{"X-RateLimit-Remaining": "12"}))

        assert type(error) is FetchError
        assert error.status_code == 403

    def test_forbidden_without_header(self):
        """Test 403 without the quota header is a generic FetchError."""
        assert type(classify_response(_response(403))) is FetchError

    def test_not_found(self):
        """Test 404 maps to NotFoundError."""
        assert isinstance(classify_response(_response(404)), NotFoundError)

    def test_unauthorized(self):
        """Test 401 maps to AuthError."""
        assert isinstance(classify_response(_response(401)), AuthError)

    @pytest.mark.parametrize("status", [400, 422, 500, 502])
    def test_other_statuses(self, status):
        """Test other failures carry their status code."""
        error = classify_response(_response(status))

        assert type(error) is FetchError
        assert error.status_code == status
        assert str(status) in str(error)


class TestFormatFailure:
    """Tests for user-facing failure messages."""

    def test_includes_message_and_checklist(self):
        """Test the message is followed by the action's checklist."""
        text = format_failure("generating text file", NoSelectionError())

        assert text.startswith("Error generating text file: No files selected")
        assert "Please ensure:" in text
        assert "1. You have selected at least one file" in text
        assert "4. The GitHub API is accessible" in text

    def test_fetch_checklist(self):
        """Test the repository fetch checklist."""
        text = format_failure("fetching repository contents", NotFoundError("gone"))

        assert "private repository" in text
