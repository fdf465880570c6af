"""
Error taxonomy for repo-to-text.

Every failure surfaced to the user is one of these exceptions. Hosting API failures
are classified from the HTTP status code by `classify_response`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx


class RepoToTextError(Exception):
    """Base class for all repo-to-text errors."""

    pass


class InvalidUrlError(RepoToTextError):
    """The repository URL does not match any accepted shape."""

    pass


class FetchError(RepoToTextError):
    """A request to the hosting API or the wiki service failed.

    Attributes:
        status_code: HTTP status of the failed response, when there was one.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ReferenceFetchError(FetchError):
    """Listing branches or tags failed."""

    pass


class NotFoundError(FetchError):
    """Repository, wiki, path or page does not exist (or is not visible)."""

    pass


class MirrorNotFoundError(NotFoundError):
    """The wiki service has no local mirror for the requested repository."""

    pass


class AuthError(FetchError):
    """The access token was rejected."""

    pass


class RateLimitError(FetchError):
    """The hosting API quota is exhausted."""

    pass


class CloneError(RepoToTextError):
    """Cloning or pulling a wiki mirror failed at the git layer."""

    pass


class NoSelectionError(RepoToTextError):
    """An export was requested with no files selected."""

    def __init__(self, message: str = "No files selected") -> None:
        super().__init__(message)


RATE_LIMIT_MESSAGE = (
    "GitHub API rate limit exceeded. Please try again later or provide a valid "
    "access token to increase your rate limit."
)
NOT_FOUND_MESSAGE = (
    "Repository, wiki, or path not found. Please check that the URL and permissions are correct."
)
AUTH_MESSAGE = (
    "Authentication failed. Please check your access token if you're trying to access "
    "private content."
)


def classify_response(response: httpx.Response) -> FetchError:
    """Map a failed hosting API response to the matching error.

    A 403 only counts as rate limiting when the remaining quota header is exactly
    zero; any other 403 is a generic `FetchError`.

    Args:
        response: A response whose status is not successful.

    Returns:
        The error to raise for that response.
    """
    status = response.status_code
    if status == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
        return RateLimitError(RATE_LIMIT_MESSAGE, status)
    if status == 404:
        return NotFoundError(NOT_FOUND_MESSAGE, status)
    if status == 401:
        return AuthError(AUTH_MESSAGE, status)
    return FetchError(
        f"Failed to fetch repository data. Status: {status}. "
        "Please check your input and try again.",
        status,
    )


# Likely causes appended to every user-visible failure, per action.
CHECKLISTS: dict[str, list[str]] = {
    "fetching repository contents": [
        "The repository URL is correct and accessible.",
        "You have the necessary permissions to access the repository.",
        "If it's a private repository, you've provided a valid access token.",
        "The specified branch/tag and path (if any) exist in the repository.",
    ],
    "generating text file": [
        "You have selected at least one file from the directory structure.",
        "Your access token (if provided) is valid and has the necessary permissions.",
        "You have a stable internet connection.",
        "The GitHub API is accessible and functioning normally.",
    ],
    "generating zip file": [
        "You have selected at least one file from the directory structure.",
        "Your access token (if provided) is valid and has the necessary permissions.",
        "You have a stable internet connection.",
        "The GitHub API is accessible and functioning normally.",
    ],
}


def format_failure(action: str, error: BaseException) -> str:
    """Render an error as the single message shown to the user.

    Args:
        action: Action label, one of the `CHECKLISTS` keys.
        error: The exception that aborted the action.

    Returns:
        The message followed by the numbered checklist of likely causes.
    """
    lines = [f"Error {action}: {error}", "", "Please ensure:"]
    for i, item in enumerate(CHECKLISTS.get(action, []), start=1):
        lines.append(f"{i}. {item}")
    return "\n".join(lines)
