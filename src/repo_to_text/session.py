"""
Session orchestration.

Wires the resolver, tree fetcher, wiki bridge, selection filter, content fetcher and
export formatter into the three user actions: load a URL, generate text, download zip.

Each action is tagged with a generation number. Starting a new load makes every older
action stale, and a stale action's results are discarded instead of applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer

from .config import TOKEN_KEY, FetchedFile, ParsedUrl, TreeEntry
from .config_loader import Settings
from .contents import BlobStore, ContentFetcher
from .errors import NoSelectionError
from .export import format_as_text, format_as_zip
from .github import GitHubClient
from .resolver import disambiguate, list_references, parse_repo_url
from .selection import SelectionFilter
from .tree import fetch_tree, resolve_sha
from .wiki import WikiClient, to_tree

logger = logging.getLogger(__name__)

APP_NAME = "repo-to-text"


class TokenStore:
    """Access token persisted across sessions in a single file."""

    def __init__(self, directory: Path | None = None, key: str = TOKEN_KEY) -> None:
        directory = Path(typer.get_app_dir(APP_NAME)) if directory is None else directory
        self.path = directory / key

    def load(self) -> str | None:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def save(self, token: str | None) -> None:
        """Write the token, or remove the stored one when it is empty."""
        if token and token.strip():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(token.strip(), encoding="utf-8")
            try:
                self.path.chmod(0o600)
            except OSError as e:
                logger.debug("Could not restrict token file permissions: %s", e)
        else:
            self.path.unlink(missing_ok=True)


@dataclass
class LoadedTree:
    """What a successful load produced."""

    parsed: ParsedUrl
    revision: str
    sub_path: str
    entries: list[TreeEntry]


class Session:
    """
    One user's working session.

    Owns the selection state, the in-memory blobs backing wiki trees, and the clients.
    Use as an async context manager or call `aclose()`.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        token_store: TokenStore | None = None,
        github: GitHubClient | None = None,
        wiki: WikiClient | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.token_store = token_store or TokenStore()
        self.github = github or GitHubClient(self.settings.api_base, timeout=self.settings.timeout)
        self.wiki = wiki or WikiClient(
            self.settings.wiki_service_url,
            web_host=self.settings.web_host,
            timeout=self.settings.timeout,
        )
        self.selection = SelectionFilter()
        self.blobs = BlobStore()
        self.fetcher = ContentFetcher(
            self.github, self.blobs, max_concurrency=self.settings.max_concurrency
        )
        self.loaded: LoadedTree | None = None
        self.generation = 0

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.github.aclose()
        await self.wiki.aclose()

    def _begin(self) -> int:
        self.generation += 1
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def load(self, url: str, token: str | None = None) -> LoadedTree | None:
        """Resolve a repository or wiki URL and install its tree.

        The token is persisted first (removed when empty). If another load starts
        before this one finishes, this one's result is discarded.

        Args:
            url: Repository or wiki URL.
            token: Optional access token.

        Returns:
            The loaded tree, or None if the result went stale.

        Raises:
            InvalidUrlError, ReferenceFetchError, FetchError, CloneError: On failure.
        """
        self.token_store.save(token)
        generation = self._begin()
        parsed = parse_repo_url(url, self.settings.web_host)
        blobs = BlobStore()

        if parsed.is_wiki:
            pages = await self.wiki.fetch_wiki_contents(parsed.owner, parsed.repo, token)
            loaded = LoadedTree(parsed, "master", "", to_tree(pages, blobs))
        else:
            revision, sub_path = "", ""
            if parsed.last_string:
                references = await list_references(self.github, parsed.owner, parsed.repo, token)
                revision, sub_path = disambiguate(parsed.last_string, references)
            sha = await resolve_sha(
                self.github, parsed.owner, parsed.repo, revision, sub_path, token
            )
            entries = await fetch_tree(self.github, parsed.owner, parsed.repo, sha, token)
            loaded = LoadedTree(parsed, revision, sub_path, entries)

        if not self.is_current(generation):
            logger.info("Discarding stale result for %s", url)
            return None

        # Tree state is replaced wholesale
        self.blobs.replace(blobs)
        self.selection.set_tree(loaded.entries)
        self.loaded = loaded
        logger.info(
            "Loaded %d files from %s", len(self.selection.all_files), parsed.ref.full_name
        )
        return loaded

    async def _fetch_selected(self, token: str | None) -> tuple[int, list[FetchedFile]]:
        self.token_store.save(token)
        selected = self.selection.get_selected_files()
        if not selected:
            raise NoSelectionError()
        generation = self.generation
        files = await self.fetcher.fetch_contents(selected, token)
        return generation, files

    async def generate_text(self, token: str | None = None, tree: bool = True) -> str | None:
        """Fetch the selected files and render the text bundle.

        Returns:
            The bundle, or None if a newer load made this result stale.

        Raises:
            NoSelectionError: Before any request, when nothing is selected.
        """
        generation, files = await self._fetch_selected(token)
        if not self.is_current(generation):
            return None
        return format_as_text(files, tree=tree)

    async def generate_zip(self, token: str | None = None) -> bytes | None:
        """Fetch the selected files and pack them into a zip archive.

        Returns:
            The archive bytes, or None if a newer load made this result stale.

        Raises:
            NoSelectionError: Before any request, when nothing is selected.
        """
        generation, files = await self._fetch_selected(token)
        if not self.is_current(generation):
            return None
        return format_as_zip(files)

