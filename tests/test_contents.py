"""Tests for the content fetcher."""

import asyncio

import httpx
import pytest

from repo_to_text.config import EntryType, TreeEntry
from repo_to_text.contents import BlobStore, ContentFetcher
from repo_to_text.errors import NotFoundError, RateLimitError


def _blob(path, url):
    return TreeEntry(path=path, type=EntryType.BLOB, url=url)


class TestBlobStore:
    """Tests for in-memory blob handles."""

    def test_put_and_read(self):
        """Test stored text is readable through its handle."""
        store = BlobStore()
        handle = store.put("hello")

        assert store.owns(handle)
        assert store.read(handle) == "hello"
        assert not store.owns("https://api.github.com/x")

    def test_unknown_handle(self):
        """Test reading a dropped handle raises NotFoundError."""
        store = BlobStore()
        handle = store.put("x")
        store.clear()

        with pytest.raises(NotFoundError):
            store.read(handle)


class TestContentFetcher:
    """Tests for ContentFetcher."""

    def test_fetches_in_input_order(self, make_github, server):
        """Test results keep input order and raw bytes."""
        server.add("GET api.github.com/blobs/1", b"print('a')\n")
        server.add("GET api.github.com/blobs/2", "# B\n")
        files = [
            _blob("a.py", "https://api.github.com/blobs/1"),
            _blob("b.md", "https://api.github.com/blobs/2"),
        ]

        fetched = asyncio.run(ContentFetcher(make_github()).fetch_contents(files, "tok"))

        assert [f.path for f in fetched] == ["a.py", "b.md"]
        assert fetched[0].text == "print('a')\n"
        assert fetched[0].raw == b"print('a')\n"
        assert fetched[1].url == "https://api.github.com/blobs/2"
        for request in server.requests:
            assert request.headers["Accept"] == "application/vnd.github.v3.raw"
            assert request.headers["Authorization"] == "Bearer tok"

    def test_non_utf8_content_is_decoded(self, make_github, server):
        """Test Latin-1 payloads decode without errors and keep exact bytes."""
        payload = "café olé déjà vu, naïve façade".encode("latin-1")
        server.add("GET api.github.com/blobs/1", payload)

        fetched = asyncio.run(
            ContentFetcher(make_github()).fetch_contents(
                [_blob("a.txt", "https://api.github.com/blobs/1")]
            )
        )

        assert fetched[0].raw == payload
        assert "caf" in fetched[0].text

    def test_single_failure_fails_batch(self, make_github, server):
        """Test one failing file aborts the whole fetch with its error."""
        server.add("GET api.github.com/blobs/1", "ok")
        server.add(
            "GET api.github.com/blobs/2",
            httpx.Response(403, headers={"X-RateLimit-Remaining": "0"}),
        )
        files = [
            _blob("a", "https://api.github.com/blobs/1"),
            _blob("b", "https://api.github.com/blobs/2"),
        ]

        with pytest.raises(RateLimitError):
            asyncio.run(ContentFetcher(make_github()).fetch_contents(files))

    def test_blob_handles_skip_network(self, make_github, server):
        """Test in-memory handles are served from the store."""
        store = BlobStore()
        handle = store.put("# Home\n")

        fetched = asyncio.run(
            ContentFetcher(make_github(), store).fetch_contents([_blob("Home.md", handle)])
        )

        assert fetched[0].text == "# Home\n"
        assert fetched[0].raw is None
        assert server.requests == []

    def test_bounded_concurrency(self, make_github, server):
        """Test an optional concurrency cap still fetches everything."""
        for i in range(5):
            server.add(f"GET api.github.com/blobs/{i}", f"file {i}")
        files = [_blob(f"f{i}", f"https://api.github.com/blobs/{i}") for i in range(5)]

        fetched = asyncio.run(
            ContentFetcher(make_github(), max_concurrency=2).fetch_contents(files)
        )

        assert [f.text for f in fetched] == [f"file {i}" for i in range(5)]

    def test_empty_selection(self, make_github):
        """Test fetching nothing returns nothing."""
        assert asyncio.run(ContentFetcher(make_github()).fetch_contents([])) == []
