"""
Wiki bridge client.

Wikis are not browsable through the hosting API, so a companion service mirrors the
wiki repository and serves its pages. This module drives that service and shapes the
pages like an ordinary repository tree.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from .config import DEFAULT_WEB_HOST, DEFAULT_WIKI_SERVICE_URL, EntryType, TreeEntry, WikiPage
from .contents import BlobStore
from .errors import CloneError, FetchError, NotFoundError
from .github import auth_headers

logger = logging.getLogger(__name__)


def _service_error(response: httpx.Response, message: str) -> FetchError:
    if response.status_code == 404:
        return NotFoundError(message, response.status_code)
    return FetchError(message, response.status_code)


class WikiClient:
    """
    Client for the companion wiki service.

    Use as an async context manager or call `aclose()`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_WIKI_SERVICE_URL,
        http: httpx.AsyncClient | None = None,
        web_host: str = DEFAULT_WEB_HOST,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.web_host = web_host
        if http is None:
            http = httpx.AsyncClient() if timeout is None else httpx.AsyncClient(timeout=timeout)
        self.http = http

    async def __aenter__(self) -> WikiClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def repo_url(self, owner: str, repo: str) -> str:
        return f"https://{self.web_host}/{owner}/{repo}"

    async def _request(
        self, method: str, path: str, token: str | None, **kwargs: Any
    ) -> httpx.Response:
        try:
            return await self.http.request(
                method,
                f"{self.base_url}/{path}",
                headers=auth_headers(token, accept=None),
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise FetchError(f"Wiki service unreachable at {self.base_url}: {e}") from e

    async def clone(self, repo_url: str, token: str | None = None) -> str:
        """Ask the service to clone or refresh the wiki mirror."""
        try:
            response = await self._request("POST", "clone-wiki", token, json={"repoUrl": repo_url})
        except FetchError as e:
            raise CloneError(f"Failed to clone wiki repository: {e}") from e
        if not response.is_success:
            raise CloneError("Failed to clone wiki repository")
        return response.json().get("message", "")

    async def list_pages(self, repo_url: str, token: str | None = None) -> list[str]:
        response = await self._request("GET", "wiki-pages", token, params={"repoUrl": repo_url})
        if not response.is_success:
            raise _service_error(response, "Failed to fetch wiki pages")
        return list(response.json().get("pages", []))

    async def read_page(self, repo_url: str, page: str, token: str | None = None) -> WikiPage:
        response = await self._request(
            "GET", f"wiki-pages/{quote(page, safe='')}", token, params={"repoUrl": repo_url}
        )
        if not response.is_success:
            raise _service_error(response, f"Failed to fetch content for {page}")
        return WikiPage(path=page, text=response.json()["content"])

    async def fetch_wiki_contents(
        self, owner: str, repo: str, token: str | None = None
    ) -> list[WikiPage]:
        """Clone/refresh a wiki, then fetch every page's text.

        Pages are fetched concurrently; one failing page fails the whole call.

        Args:
            owner: Repository owner.
            repo: Repository name (with or without the `.wiki` marker).
            token: Optional access token, forwarded to the service.

        Returns:
            Pages in the order the service listed them.

        Raises:
            CloneError: If the service could not clone or pull the wiki.
            NotFoundError: If the mirror or a page is missing.
            FetchError: For any other service failure.
        """
        repo_url = self.repo_url(owner, repo)
        message = await self.clone(repo_url, token)
        logger.info("%s", message or f"Wiki mirror ready for {owner}/{repo}")

        pages = await self.list_pages(repo_url, token)
        return list(await asyncio.gather(*(self.read_page(repo_url, p, token) for p in pages)))


def to_tree(pages: Sequence[WikiPage], blobs: BlobStore) -> list[TreeEntry]:
    """Shape wiki pages as blob tree entries backed by in-memory handles."""
    return [
        TreeEntry(path=page.path, type=EntryType.BLOB, url=blobs.put(page.text))
        for page in pages
    ]
