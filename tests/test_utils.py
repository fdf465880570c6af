"""Tests for utility helpers."""

from __future__ import annotations

from repo_to_text.utils import (
    build_tree,
    decode_bytes,
    detect_encoding,
    estimate_tokens,
    extension_of,
)


def test_extension_of() -> None:
    assert extension_of("src/App.PY") == "py"
    assert extension_of("archive.tar.gz") == "gz"
    assert extension_of("Makefile") == "makefile"
    assert extension_of(".gitignore") == "gitignore"


def test_detect_encoding_prefers_utf8_and_boms() -> None:
    assert detect_encoding(b"") == "utf-8"
    assert detect_encoding("héllo".encode()) == "utf-8"
    assert detect_encoding(b"\xef\xbb\xbfhi") == "utf-8-sig"
    assert detect_encoding(b"\xff\xfeh\x00") == "utf-16-le"


def test_decode_bytes_never_raises() -> None:
    assert decode_bytes("naïve".encode()) == "naïve"
    assert decode_bytes(b"\xef\xbb\xbfhi") == "hi"
    assert isinstance(decode_bytes(b"\x80\x81\xfe\xff\x00binary"), str)


def test_estimate_tokens() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("hello world " * 50) > 0


def test_build_tree_directories_first() -> None:
    tree = build_tree(["src/b.py", "README.md", "src/a/x.py"], root_name="o/r")

    assert tree.splitlines() == [
        "o/r/",
        "├── src/",
        "│   ├── a/",
        "│   │   └── x.py",
        "│   └── b.py",
        "└── README.md",
    ]


def test_build_tree_without_root() -> None:
    assert build_tree(["a.txt"]) == "└── a.txt"
    assert build_tree([]) == ""
