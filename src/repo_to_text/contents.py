"""
Content fetcher.

Retrieves the raw content of selected tree entries, one request per file, all at once.
Entries whose `url` is an in-memory `blob:` handle (wiki pages) are served from a
`BlobStore` so callers never need to know where a tree came from.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence

from .config import ACCEPT_RAW, FetchedFile, TreeEntry
from .errors import NotFoundError
from .github import GitHubClient
from .utils import decode_bytes

logger = logging.getLogger(__name__)

BLOB_PREFIX = "blob:repo-to-text/"


class BlobStore:
    """In-memory text addressed by `blob:` handles."""

    def __init__(self) -> None:
        self._blobs: dict[str, str] = {}

    def put(self, text: str) -> str:
        """Store text and return its handle."""
        handle = f"{BLOB_PREFIX}{uuid.uuid4()}"
        self._blobs[handle] = text
        return handle

    def owns(self, url: str) -> bool:
        return url.startswith(BLOB_PREFIX)

    def read(self, url: str) -> str:
        try:
            return self._blobs[url]
        except KeyError:
            raise NotFoundError(f"Blob no longer available: {url}") from None

    def clear(self) -> None:
        self._blobs.clear()

    def replace(self, other: BlobStore) -> None:
        """Drop every handle and take over those of another store."""
        self._blobs = dict(other._blobs)

    def __len__(self) -> int:
        return len(self._blobs)


class ContentFetcher:
    """
    Fetches file contents for a selection.

    All requests run concurrently. The first failure aborts the batch and is raised;
    requests still in flight are left to finish and their results ignored.
    """

    def __init__(
        self,
        client: GitHubClient,
        blobs: BlobStore | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            client: Hosting API client
            blobs: Store resolving `blob:` handles
            max_concurrency: Optional cap on simultaneous requests (None = unbounded)
        """
        self.client = client
        self.blobs = blobs
        self.max_concurrency = max_concurrency

    async def _fetch_one(
        self, entry: TreeEntry, token: str | None, limiter: asyncio.Semaphore | None
    ) -> FetchedFile:
        if self.blobs is not None and self.blobs.owns(entry.url):
            return FetchedFile(path=entry.path, url=entry.url, text=self.blobs.read(entry.url))

        if limiter is None:
            response = await self.client.get(entry.url, token, accept=ACCEPT_RAW)
        else:
            async with limiter:
                response = await self.client.get(entry.url, token, accept=ACCEPT_RAW)

        raw = response.content
        return FetchedFile(path=entry.path, url=entry.url, text=decode_bytes(raw), raw=raw)

    async def fetch_contents(
        self, files: Sequence[TreeEntry], token: str | None = None
    ) -> list[FetchedFile]:
        """Fetch every file's content, preserving input order.

        Args:
            files: Selected blob entries.
            token: Optional access token.

        Returns:
            One `FetchedFile` per input entry, in input order.

        Raises:
            FetchError: The first failure among the requests.
        """
        limiter = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        logger.debug("Fetching %d files", len(files))
        results = await asyncio.gather(*(self._fetch_one(f, token, limiter) for f in files))
        return list(results)
