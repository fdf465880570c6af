"""
Data model and defaults for repo-to-text.

Plain dataclasses shared by the resolver, fetchers, selection filter and exporters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Hosting API defaults
DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_WEB_HOST = "github.com"
DEFAULT_WIKI_SERVICE_URL = "http://localhost:3000"
DEFAULT_FRONTEND_URL = "http://localhost:5173"
DEFAULT_SERVICE_PORT = 3000

# Accept headers per call site
ACCEPT_JSON = "application/vnd.github+json"
ACCEPT_OBJECT = "application/vnd.github.object+json"
ACCEPT_RAW = "application/vnd.github.v3.raw"

# Branches tried first when disambiguating "<ref>/<path>" suffixes, in this order
PRIORITY_BRANCHES: tuple[str, ...] = ("master", "main", "dev")

# Wikis only ever have this branch
WIKI_BRANCH = "master"
WIKI_SUFFIX = ".wiki"

# Output artifact names
TEXT_OUTPUT_NAME = "prompt.txt"
ZIP_OUTPUT_NAME = "partial_repo.zip"

# Persisted token key
TOKEN_KEY = "githubAccessToken"


class EntryType(str, Enum):
    """Kind of a tree entry."""

    BLOB = "blob"
    TREE = "tree"


class ExportFormat(str, Enum):
    """Export artifact format."""

    TEXT = "text"
    ZIP = "zip"


@dataclass(frozen=True)
class RepoRef:
    """A repository identity.

    Attributes:
        owner: Account or organisation name.
        repo: Repository name, keeping the `.wiki` marker for wiki repositories.
        is_wiki: Whether this addresses the repository's wiki.
    """

    owner: str
    repo: str
    is_wiki: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class ParsedUrl:
    """Result of parsing a repository URL.

    Attributes:
        owner: Account or organisation name.
        repo: Repository name (with `.wiki` when present in the URL).
        last_string: Everything after `/tree/`, possibly empty. Encodes
            `<branch-or-tag>[/<sub/path>]` and is ambiguous until matched against refs.
        is_wiki: Whether the URL addressed a wiki.
    """

    owner: str
    repo: str
    last_string: str = ""
    is_wiki: bool = False

    @property
    def ref(self) -> RepoRef:
        return RepoRef(owner=self.owner, repo=self.repo, is_wiki=self.is_wiki)


@dataclass
class References:
    """Branch and tag names of a repository.

    Branches are already in disambiguation order (priority branches first).
    """

    branches: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def candidates(self) -> list[str]:
        """Return branches followed by tags, the order used for matching."""
        return [*self.branches, *self.tags]


@dataclass(frozen=True)
class TreeEntry:
    """One entry of a flat recursive tree listing.

    Attributes:
        path: Repository-relative path, unique within one tree.
        type: Blob (file) or tree (directory).
        url: Locator used to retrieve the content. For wiki trees this is an
            in-memory `blob:` handle rather than a remote URL.
        sha: Git object id, when known.
        size: Size in bytes, when known.
    """

    path: str
    type: EntryType
    url: str
    sha: str | None = None
    size: int | None = None

    @property
    def is_blob(self) -> bool:
        return self.type == EntryType.BLOB

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> TreeEntry:
        """Build an entry from one element of the git trees API `tree` array."""
        return cls(
            path=item["path"],
            type=EntryType(item["type"]),
            url=item.get("url", ""),
            sha=item.get("sha"),
            size=item.get("size"),
        )


@dataclass(frozen=True)
class FetchedFile:
    """Retrieved content of one selected file.

    Attributes:
        path: Repository-relative path.
        url: Locator the content was fetched from.
        text: Decoded text content.
        raw: Exact bytes received, when the content came over the wire.
    """

    path: str
    url: str
    text: str
    raw: bytes | None = None

    @property
    def data(self) -> bytes:
        """Bytes to archive: the raw payload if kept, else the UTF-8 encoded text."""
        if self.raw is not None:
            return self.raw
        return self.text.encode("utf-8")


@dataclass(frozen=True)
class WikiPage:
    """A wiki page as returned by the wiki service."""

    path: str
    text: str
