"""
Utility functions for repo-to-text.

Includes token estimation, encoding detection for fetched payloads, extension parsing,
and tree drawing for flat path listings.
"""

from __future__ import annotations

import logging
from typing import Any

import chardet
import tiktoken

logger = logging.getLogger(__name__)

_tiktoken_encoder: Any | None = None
_tiktoken_loaded = False


def _get_encoder() -> Any | None:
    global _tiktoken_encoder, _tiktoken_loaded
    if not _tiktoken_loaded:
        _tiktoken_loaded = True
        try:
            # The encoding tables are downloaded on first use; sandboxed environments may
            # not be able to fetch them.
            _tiktoken_encoder = tiktoken.get_encoding("cl100k_base")
        except Exception as e:
            logger.debug("tiktoken unavailable, using heuristic token estimate: %s", e)
            _tiktoken_encoder = None
    return _tiktoken_encoder


def estimate_tokens(text: str) -> int:
    """Estimate token count for a string.

    Uses `tiktoken` for an OpenAI-style tokenization; if its encoding tables cannot be
    loaded, falls back to a lightweight heuristic.

    Args:
        text: Input text to estimate tokens for.

    Returns:
        Estimated number of tokens in `text`.
    """
    encoder = _get_encoder()
    if encoder is not None:
        return len(encoder.encode(text, disallowed_special=()))

    # ~4 chars/token
    return len(text) // 4


def detect_encoding(sample: bytes) -> str:
    """Detect a likely text encoding for a payload.

    Prefers UTF-8 and only uses `chardet` when strict UTF-8 decoding fails, which avoids
    misdetecting UTF-8 as Latin-1/CP1252.

    Args:
        sample: Leading bytes of the payload.

    Returns:
        A normalized encoding label (e.g., `"utf-8"`, `"utf-8-sig"`, `"utf-16-le"`).
    """
    if not sample:
        return "utf-8"

    # BOM markers first (most reliable)
    if sample.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    if sample.startswith(b"\xff\xfe"):
        return "utf-16-le"
    if sample.startswith(b"\xfe\xff"):
        return "utf-16-be"

    try:
        sample.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    result = chardet.detect(sample)
    encoding_any = result.get("encoding")
    if not isinstance(encoding_any, str) or not encoding_any:
        return "utf-8"

    encoding = encoding_any.lower()
    if encoding in ("ascii", "utf-8", "utf8"):
        return "utf-8"
    return encoding


def decode_bytes(data: bytes) -> str:
    """Decode a fetched payload to text without ever raising.

    Args:
        data: Raw response body.

    Returns:
        Decoded text; undecodable bytes are replaced.
    """
    encoding = detect_encoding(data)
    try:
        return data.decode(encoding, errors="replace")
    except LookupError:
        return data.decode("utf-8", errors="replace")


def normalize_path(path: str) -> str:
    """Normalize a path for consistent comparisons.

    Args:
        path: Path string that may contain platform-specific separators.

    Returns:
        Normalized path using forward slashes.
    """
    return path.replace("\\", "/")


def extension_of(path: str) -> str:
    """Return the lower-cased text after the last `.` of a path.

    A name without any dot yields the whole lower-cased path.
    """
    return path.rsplit(".", 1)[-1].lower()


def build_tree(paths: list[str], root_name: str = "") -> str:
    """Draw a flat list of repository paths as an indented tree.

    Args:
        paths: Repository-relative file paths.
        root_name: Optional label for the first line.

    Returns:
        String representation of the directory tree.
    """
    root: dict[str, Any] = {}
    for path in paths:
        node = root
        for part in normalize_path(path).strip("/").split("/"):
            node = node.setdefault(part, {})

    lines = [root_name + "/"] if root_name else []

    def _walk(node: dict[str, Any], prefix: str) -> None:
        # Directories first, then files, each alphabetically
        entries = sorted(node.items(), key=lambda e: (not e[1], e[0]))
        for i, (name, children) in enumerate(entries):
            is_last = i == len(entries) - 1
            connector = "└── " if is_last else "├── "
            if children:
                lines.append(f"{prefix}{connector}{name}/")
                extension = "    " if is_last else "│   "
                _walk(children, prefix + extension)
            else:
                lines.append(f"{prefix}{connector}{name}")

    _walk(root, "")
    return "\n".join(lines)
