"""
Repo-to-Text: Flatten GitHub repositories and wikis into prompt-ready text.

Resolves a repository URL to a concrete revision, lists its file tree, lets the caller
filter and select files, then bundles the selected contents as:
- A single plain-text document for pasting into LLM prompts
- A zip archive preserving the selected files' paths and bytes
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
