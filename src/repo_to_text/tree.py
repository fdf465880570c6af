"""
Tree fetcher.

Resolves a revision and optional sub-path to a git object id, then lists the full
recursive tree under it in a single request.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

from .config import ACCEPT_JSON, ACCEPT_OBJECT, WIKI_BRANCH, EntryType, TreeEntry
from .errors import FetchError
from .github import GitHubClient
from .resolver import is_wiki_repo

logger = logging.getLogger(__name__)


async def resolve_sha(
    client: GitHubClient,
    owner: str,
    repo: str,
    revision: str = "",
    sub_path: str = "",
    token: str | None = None,
) -> str:
    """Resolve a revision and sub-path to the object id to list.

    Wiki repositories always use `master`; an empty revision also defaults to `master`.

    Args:
        client: Hosting API client.
        owner: Repository owner.
        repo: Repository name.
        revision: Branch, tag or commit id.
        sub_path: Optional directory inside the repository.
        token: Optional access token.

    Returns:
        The `sha` of the addressed object.

    Raises:
        NotFoundError, AuthError, RateLimitError, FetchError: Per the response status.
    """
    ref = WIKI_BRANCH if is_wiki_repo(repo) else (revision or WIKI_BRANCH)
    path = quote(sub_path.strip("/"))
    data = await client.get_json(
        f"repos/{owner}/{repo}/contents/{path}",
        token,
        accept=ACCEPT_OBJECT,
        params={"ref": ref},
    )
    sha = data.get("sha") if isinstance(data, dict) else None
    if not sha:
        raise FetchError(f"No object id returned for {owner}/{repo}@{ref}:{sub_path or '/'}")
    return sha


async def fetch_tree(
    client: GitHubClient,
    owner: str,
    repo: str,
    sha: str,
    token: str | None = None,
) -> list[TreeEntry]:
    """Fetch the recursive tree listing for an object id.

    Only what the single response contains is returned; a `truncated` listing is
    logged but not paginated.

    Args:
        client: Hosting API client.
        owner: Repository owner.
        repo: Repository name.
        sha: Object id from `resolve_sha`.
        token: Optional access token.

    Returns:
        Blob and tree entries in API order.
    """
    data = await client.get_json(
        f"repos/{owner}/{repo}/git/trees/{sha}",
        token,
        accept=ACCEPT_JSON,
        params={"recursive": "1"},
    )
    if data.get("truncated"):
        logger.warning("Tree listing for %s/%s was truncated by the API", owner, repo)

    valid_types = {t.value for t in EntryType}
    entries = [TreeEntry.from_api(item) for item in data.get("tree", []) if item.get("type") in valid_types]
    logger.debug("Fetched %d tree entries for %s/%s@%s", len(entries), owner, repo, sha)
    return entries
