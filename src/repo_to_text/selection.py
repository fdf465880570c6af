"""
Selection filter.

Holds the file list of the last fetched tree, the set of hidden extensions, and the
caller's selection. Visibility and selection are independent: a file is exported only
when it is both selected and visible.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable

import pathspec

from .config import TreeEntry
from .utils import extension_of

logger = logging.getLogger(__name__)


def parse_extension_list(csv: str) -> set[str]:
    """Parse `"md, .PY ,,txt"` into `{"md", "py", "txt"}`.

    Entries are trimmed, lower-cased, stripped of leading dots, and empties dropped.
    """
    if not csv:
        return set()
    result = set()
    for ext in csv.split(","):
        ext = ext.strip().lower().lstrip(".")
        if ext:
            result.add(ext)
    return result


class SelectionFilter:
    """
    Owned selection state for one loaded tree.

    The visible set is recomputed from scratch whenever the tree or the hidden
    extensions change; it is never patched incrementally.
    """

    def __init__(self) -> None:
        self.all_files: list[TreeEntry] = []
        self.hidden_extensions: set[str] = set()
        self._selected: set[str] = set()
        self._visible: list[TreeEntry] = []
        self._extensions: list[str] = []

    def set_tree(self, entries: Iterable[TreeEntry]) -> None:
        """Replace the file list; hidden extensions and selection are reset."""
        self.all_files = [e for e in entries if e.is_blob]
        self.hidden_extensions = set()
        self._selected = set()
        self._recompute()

    def set_hidden_extensions(self, csv: str) -> None:
        """Replace (not merge) the hidden extensions from a comma-separated string."""
        self.hidden_extensions = parse_extension_list(csv)
        self._recompute()

    def _recompute(self) -> None:
        self._visible = [
            e for e in self.all_files if extension_of(e.path) not in self.hidden_extensions
        ]
        self._extensions = sorted({extension_of(e.path) for e in self.all_files})

    def visible_set(self) -> list[TreeEntry]:
        """Files whose extension is not hidden, in tree order."""
        return list(self._visible)

    def extensions(self) -> list[str]:
        """Every distinct extension present in the tree, once each."""
        return list(self._extensions)

    def extension_counts(self) -> dict[str, int]:
        """Number of files per extension across the whole tree."""
        return dict(Counter(extension_of(e.path) for e in self.all_files))

    # Selection bits

    def select(self, paths: Iterable[str]) -> None:
        known = {e.path for e in self.all_files}
        for path in paths:
            if path in known:
                self._selected.add(path)
            else:
                logger.debug("Ignoring selection of unknown path %s", path)

    def deselect(self, paths: Iterable[str]) -> None:
        self._selected.difference_update(paths)

    def select_all(self) -> None:
        """Select every visible file."""
        self._selected.update(e.path for e in self._visible)

    def clear_selection(self) -> None:
        self._selected.clear()

    def select_extensions(self, extensions: Iterable[str]) -> None:
        """Select every file (visible or not) having one of the given extensions."""
        wanted = {ext.strip().lower().lstrip(".") for ext in extensions}
        self._selected.update(e.path for e in self.all_files if extension_of(e.path) in wanted)

    def select_globs(self, patterns: Iterable[str]) -> None:
        """Select every file matching gitignore-style path patterns."""
        lines = [p for p in patterns if p.strip()]
        if not lines:
            return
        spec = pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, lines)
        self._selected.update(e.path for e in self.all_files if spec.match_file(e.path))

    def is_selected(self, path: str) -> bool:
        return path in self._selected

    def get_selected_files(self) -> list[TreeEntry]:
        """Files that are both selected and visible, in tree order."""
        return [e for e in self._visible if e.path in self._selected]
