"""
Export formatter.

Renders fetched files as one plain-text document or as a zip archive. File content is
never transformed, truncated or escaped.
"""

from __future__ import annotations

import io
import re
import zipfile
from collections.abc import Sequence

from .config import FetchedFile
from .utils import build_tree

HEADER_RULE = "=" * 16
STRUCTURE_TITLE = "Directory Structure:"

_HEADER_RE = re.compile(
    rf"^{HEADER_RULE} File: (.*) \((\d+) chars\) {HEADER_RULE}\n", re.MULTILINE
)


def file_header(path: str, size: int) -> str:
    """Header line of one file section; `size` is the length of its text in characters."""
    return f"{HEADER_RULE} File: {path} ({size} chars) {HEADER_RULE}"


def format_as_text(files: Sequence[FetchedFile], tree: bool = True) -> str:
    """Concatenate files into a single document, in input order.

    Layout: an optional directory structure preamble, then for each file its header
    line, the raw text, and one separating newline.

    Args:
        files: Fetched files to render.
        tree: Whether to start with a tree of the included paths.

    Returns:
        The text bundle.
    """
    out = io.StringIO()
    if tree:
        out.write(f"{STRUCTURE_TITLE}\n\n")
        out.write(build_tree([f.path for f in files]))
        out.write("\n\n")

    for f in files:
        out.write(file_header(f.path, len(f.text)))
        out.write("\n")
        out.write(f.text)
        out.write("\n")
    return out.getvalue()


def parse_text_bundle(text: str) -> list[tuple[str, str]]:
    """Split a `format_as_text` document back into `(path, text)` pairs.

    Anything before the first file header (the structure preamble) is skipped. Each
    body is sliced by the length recorded in its header, so file text that looks like
    a header is kept intact.

    Raises:
        ValueError: If the document is not a well-formed bundle.
    """
    match = _HEADER_RE.search(text)
    if match is None:
        return []

    result = []
    pos = match.start()
    while pos < len(text):
        match = _HEADER_RE.match(text, pos)
        if match is None:
            raise ValueError(f"Expected a file header at offset {pos}")
        start = match.end()
        end = start + int(match.group(2))
        # Each body is followed by exactly one separating newline
        if text[end:end + 1] != "\n":
            raise ValueError(f"Truncated body for {match.group(1)}")
        result.append((match.group(1), text[start:end]))
        pos = end + 1
    return result


def archive_path(path: str) -> str:
    """Archive entry name for a repository path (leading `/` removed)."""
    return path[1:] if path.startswith("/") else path


def format_as_zip(files: Sequence[FetchedFile]) -> bytes:
    """Pack files into a zip archive, one entry per file with its exact bytes.

    Args:
        files: Fetched files to archive.

    Returns:
        The archive as bytes.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for f in files:
            zf.writestr(archive_path(f.path), f.data)
    return buffer.getvalue()
