"""
URL and reference resolution.

Turns a user-supplied repository URL into owner/repo plus a raw revision hint, and
splits an ambiguous `<branch-or-tag>/<sub/path>` hint using the repository's refs.
"""

from __future__ import annotations

import asyncio
import logging
import re

import httpx

from .config import (
    ACCEPT_JSON,
    DEFAULT_WEB_HOST,
    PRIORITY_BRANCHES,
    WIKI_BRANCH,
    WIKI_SUFFIX,
    ParsedUrl,
    References,
)
from .errors import InvalidUrlError, ReferenceFetchError
from .github import GitHubClient, auth_headers

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = (
    "Invalid GitHub repository URL. Please ensure the URL is in the correct format: "
    "https://github.com/owner/repo, https://github.com/owner/repo.wiki.git, "
    "or https://github.com/owner/repo/tree/branch/path"
)


def _url_pattern(host: str) -> re.Pattern[str]:
    return re.compile(
        rf"^https://{re.escape(host)}/([^/]+)/([^/]+?)(\.wiki)?(\.git)?(/tree/(.+))?$"
    )


def parse_repo_url(url: str, host: str = DEFAULT_WEB_HOST) -> ParsedUrl:
    """Parse a repository or wiki URL.

    Supports:
    - `https://github.com/owner/repo`
    - `https://github.com/owner/repo.git`
    - `https://github.com/owner/repo.wiki[.git]`
    - `https://github.com/owner/repo/tree/<ref>[/<path>]`

    Args:
        url: Repository URL; one trailing slash is ignored.
        host: Accepted host name.

    Returns:
        The parsed URL; `repo` keeps the `.wiki` marker for wiki URLs.

    Raises:
        InvalidUrlError: If the URL does not match any accepted shape.
    """
    if not isinstance(url, str):
        raise InvalidUrlError(INVALID_URL_MESSAGE)

    url = url.strip()
    if url.endswith("/"):
        url = url[:-1]

    match = _url_pattern(host).match(url)
    if not match:
        raise InvalidUrlError(INVALID_URL_MESSAGE)

    wiki_marker = match.group(3) or ""
    return ParsedUrl(
        owner=match.group(1),
        repo=match.group(2) + wiki_marker,
        last_string=match.group(6) or "",
        is_wiki=bool(wiki_marker),
    )


def is_wiki_repo(repo: str) -> bool:
    return repo.endswith(WIKI_SUFFIX)


def prioritize_branches(names: list[str]) -> list[str]:
    """Put existing priority branches first (in fixed order), then the rest as returned."""
    present = set(names)
    head = [b for b in PRIORITY_BRANCHES if b in present]
    return head + [b for b in names if b not in PRIORITY_BRANCHES]


def _ref_name(ref: str) -> str:
    # "refs/heads/feature/x" -> "feature/x"
    return "/".join(ref.split("/")[2:])


async def list_references(
    client: GitHubClient, owner: str, repo: str, token: str | None = None
) -> References:
    """List branch and tag names of a repository.

    Wikis are single-branch, so they short-circuit to `master` without a request.
    Otherwise branches and tags are listed concurrently.

    Args:
        client: Hosting API client.
        owner: Repository owner.
        repo: Repository name.
        token: Optional access token.

    Returns:
        References with branches in disambiguation order.

    Raises:
        ReferenceFetchError: If either listing does not succeed.
    """
    if is_wiki_repo(repo):
        return References(branches=[WIKI_BRANCH], tags=[])

    headers = auth_headers(token, ACCEPT_JSON)
    heads_url = client.api_url(f"repos/{owner}/{repo}/git/matching-refs/heads/")
    tags_url = client.api_url(f"repos/{owner}/{repo}/git/matching-refs/tags/")

    try:
        branches_response, tags_response = await asyncio.gather(
            client.http.get(heads_url, headers=headers),
            client.http.get(tags_url, headers=headers),
        )
    except httpx.HTTPError as e:
        raise ReferenceFetchError(f"Failed to fetch references: {e}") from e
    for response in (branches_response, tags_response):
        if not response.is_success:
            raise ReferenceFetchError("Failed to fetch references", response.status_code)

    branch_names = [_ref_name(b["ref"]) for b in branches_response.json()]
    tag_names = [_ref_name(t["ref"]) for t in tags_response.json()]
    logger.debug(
        "%s/%s has %d branches and %d tags", owner, repo, len(branch_names), len(tag_names)
    )
    return References(branches=prioritize_branches(branch_names), tags=tag_names)


def disambiguate(last_string: str, references: References) -> tuple[str, str]:
    """Split a `<ref>[/<path>]` hint into revision and sub-path.

    The first candidate (priority branches, other branches, then tags) that equals the
    hint or prefixes it followed by `/` wins. This is a greedy, order-dependent match,
    not a longest match. Without a match the whole hint is the revision.

    Args:
        last_string: Raw text after `/tree/` in the URL.
        references: Known refs of the repository.

    Returns:
        Tuple `(revision, sub_path)`.
    """
    if not last_string:
        return "", ""

    for ref in references.candidates():
        if not ref:
            continue
        if last_string == ref:
            return ref, ""
        if last_string.startswith(ref + "/"):
            return ref, last_string[len(ref) + 1 :]

    return last_string, ""
