"""
Companion wiki service.

A small Flask application that keeps one local git mirror per wiki and serves its
Markdown pages as JSON:

- `POST /clone-wiki` clones the mirror if absent, else pulls the latest changes
- `GET /wiki-pages` lists the page file names of a mirror
- `GET /wiki-pages/<page>` returns one page's text
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

import git
from flask import Flask, Response, jsonify, request

from .config import DEFAULT_WEB_HOST
from .config_loader import Settings
from .errors import CloneError, MirrorNotFoundError, NotFoundError

logger = logging.getLogger(__name__)


def parse_service_repo_url(repo_url: str, host: str = DEFAULT_WEB_HOST) -> tuple[str, str] | None:
    """Extract `(owner, repo)` from `https://<host>/<owner>/<repo>[.wiki][.git]`.

    Returns:
        The pair with any `.wiki`/`.git` suffix removed from `repo`, or None if the
        URL does not match.
    """
    pattern = rf"^https://{re.escape(host)}/([^/]+)/([^/]+?)(\.wiki)?(\.git)?$"
    match = re.match(pattern, repo_url)
    if not match:
        return None
    return match.group(1), match.group(2)


class MirrorStore:
    """
    Local wiki mirrors, one directory per (owner, repo).

    Clone and pull for the same repository are serialized with a per-repository
    lock, so concurrent requests never operate on one mirror directory at once.
    """

    def __init__(self, repos_dir: Path, clone_base: str = "https://github.com") -> None:
        """
        Initialize the store.

        Args:
            repos_dir: Directory holding all mirrors (created if missing)
            clone_base: Base URL wikis are cloned from
        """
        self.repos_dir = Path(repos_dir)
        self.repos_dir.mkdir(parents=True, exist_ok=True)
        self.clone_base = clone_base.rstrip("/")
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @staticmethod
    def mirror_name(owner: str, repo: str) -> str:
        return f"{owner}-{repo}-wiki"

    def mirror_dir(self, owner: str, repo: str) -> Path:
        return self.repos_dir / self.mirror_name(owner, repo)

    def wiki_clone_url(self, owner: str, repo: str) -> str:
        return f"{self.clone_base}/{owner}/{repo}.wiki.git"

    def lock_for(self, owner: str, repo: str) -> threading.Lock:
        key = self.mirror_name(owner, repo)
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def sync(self, owner: str, repo: str) -> str:
        """Clone the wiki mirror, or pull it if it already exists.

        Returns:
            `"cloned"` or `"updated"`.

        Raises:
            CloneError: If git fails.
        """
        target = self.mirror_dir(owner, repo)
        with self.lock_for(owner, repo):
            try:
                if target.exists():
                    git.Repo(target).remote("origin").pull()
                    logger.info("Pulled wiki mirror %s", target.name)
                    return "updated"
                git.Repo.clone_from(self.wiki_clone_url(owner, repo), target)
                logger.info("Cloned wiki mirror %s", target.name)
                return "cloned"
            except (
                git.GitCommandError,
                git.InvalidGitRepositoryError,
                git.NoSuchPathError,
                ValueError,
            ) as e:
                raise CloneError(f"Failed to clone/update wiki repository: {e}") from e

    def list_pages(self, owner: str, repo: str) -> list[str]:
        """List the Markdown page file names at the mirror root."""
        target = self.mirror_dir(owner, repo)
        if not target.is_dir():
            raise MirrorNotFoundError(f"No wiki mirror for {owner}/{repo}", 404)
        return sorted(p.name for p in target.iterdir() if p.is_file() and p.name.endswith(".md"))

    def read_page(self, owner: str, repo: str, page: str) -> str:
        """Read one page's text.

        Raises:
            NotFoundError: If the mirror or page is missing, or the name points outside
                the mirror.
        """
        target = self.mirror_dir(owner, repo)
        if not target.is_dir():
            raise MirrorNotFoundError(f"No wiki mirror for {owner}/{repo}", 404)

        root = target.resolve()
        page_path = (root / page).resolve()
        if not page_path.is_relative_to(root) or ".git" in page_path.relative_to(root).parts:
            raise NotFoundError(f"Wiki page not found: {page}", 404)
        if not page_path.is_file():
            raise NotFoundError(f"Wiki page not found: {page}", 404)
        return page_path.read_text(encoding="utf-8", errors="replace")


def create_app(settings: Settings | None = None, store: MirrorStore | None = None) -> Flask:
    """Build the wiki service application.

    Args:
        settings: Service settings (defaults apply when omitted).
        store: Mirror store to use; built from `settings` when omitted.

    Returns:
        The Flask application.
    """
    settings = settings or Settings()
    store = store or MirrorStore(settings.repos_dir, settings.clone_base)
    host = settings.web_host

    app = Flask(__name__)
    app.config["MIRROR_STORE"] = store

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        if request.headers.get("Origin") == settings.frontend_url:
            response.headers["Access-Control-Allow-Origin"] = settings.frontend_url
            response.headers["Access-Control-Allow-Methods"] = "GET, POST"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        return response

    def bad_request(message: str) -> tuple[Response, int]:
        return jsonify({"error": message}), 400

    @app.post("/clone-wiki")
    def clone_wiki():
        body = request.get_json(silent=True) or {}
        repo_url = body.get("repoUrl") if isinstance(body, dict) else None
        if not repo_url:
            return bad_request("Missing repoUrl in request body")

        parsed = parse_service_repo_url(repo_url, host)
        if parsed is None:
            return bad_request("Invalid GitHub repository URL format")

        try:
            outcome = store.sync(*parsed)
        except CloneError as e:
            logger.error("%s", e)
            return (
                jsonify({"error": "Failed to clone/update wiki repository", "details": str(e)}),
                500,
            )
        return jsonify({"message": f"Wiki repository {outcome} successfully"})

    @app.get("/wiki-pages")
    def wiki_pages():
        repo_url = request.args.get("repoUrl")
        if not repo_url:
            return bad_request("Missing repoUrl query parameter")

        parsed = parse_service_repo_url(repo_url, host)
        if parsed is None:
            return bad_request("Invalid GitHub repository URL format")

        try:
            pages = store.list_pages(*parsed)
        except NotFoundError as e:
            logger.error("%s", e)
            return (
                jsonify({"error": "Wiki repository not found or not accessible", "details": str(e)}),
                404,
            )
        return jsonify({"pages": pages})

    @app.get("/wiki-pages/<path:page_name>")
    def wiki_page(page_name: str):
        repo_url = request.args.get("repoUrl")
        if not repo_url or not page_name:
            return bad_request("Missing repoUrl query parameter or pageName path parameter")

        parsed = parse_service_repo_url(repo_url, host)
        if parsed is None:
            return bad_request("Invalid GitHub repository URL format")

        try:
            content = store.read_page(*parsed, page_name)
        except NotFoundError as e:
            logger.error("%s", e)
            return (
                jsonify({"error": "Wiki page not found or not accessible", "details": str(e)}),
                404,
            )
        return jsonify({"content": content})

    return app
