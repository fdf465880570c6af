"""
Hosting API client helpers.

Every call to the hosting API (and to the wiki service) goes through `auth_headers`
so that the same authorization header shape is attached whenever a token is present.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import ACCEPT_JSON, DEFAULT_API_BASE
from .errors import FetchError, classify_response

logger = logging.getLogger(__name__)


def auth_headers(token: str | None, accept: str | None = ACCEPT_JSON) -> dict[str, str]:
    """Build request headers for the hosting API.

    Args:
        token: Optional access token; blank tokens are treated as absent.
        accept: Accept header value, or None to omit it.

    Returns:
        Header mapping with `Authorization: Bearer <token>` when a token is given.
    """
    headers: dict[str, str] = {}
    if accept:
        headers["Accept"] = accept
    if token and token.strip():
        headers["Authorization"] = f"Bearer {token.strip()}"
    return headers


class GitHubClient:
    """
    Thin async wrapper around the hosting REST API.

    Owns an `httpx.AsyncClient`; use as an async context manager or call `aclose()`.
    """

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_base: Base URL of the REST API
            http: Optional preconfigured HTTP client (tests inject a mock transport)
            timeout: Optional timeout in seconds; None keeps the httpx default
        """
        self.api_base = api_base.rstrip("/")
        if http is None:
            http = httpx.AsyncClient() if timeout is None else httpx.AsyncClient(timeout=timeout)
        self.http = http

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def api_url(self, path: str) -> str:
        return f"{self.api_base}/{path.lstrip('/')}"

    async def get(
        self,
        url: str,
        token: str | None,
        accept: str | None = ACCEPT_JSON,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Issue an authorized GET and raise the classified error on failure."""
        try:
            response = await self.http.get(url, headers=auth_headers(token, accept), params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {url} failed: {e}") from e
        if not response.is_success:
            logger.debug("GET %s failed with status %s", url, response.status_code)
            raise classify_response(response)
        return response

    async def get_json(
        self,
        path: str,
        token: str | None,
        accept: str | None = ACCEPT_JSON,
        params: dict[str, str] | None = None,
    ) -> Any:
        """GET an API path and decode its JSON body."""
        response = await self.get(self.api_url(path), token, accept=accept, params=params)
        return response.json()
