"""Tests for utility functions."""

import pytest

from notereviver.utils.file_ops import file_tree_fallback, get_file_tree
from notereviver.utils.formatters import format_count, format_size, format_time


class TestFormatters:
    @pytest.mark.parametrize(
        "size,expected",
        [(0, "0 B"), (1023, "1023 B"), (1024, "1.0 KB"), (1536, "1.5 KB"), (1073741824, "1.0 GB")],
    )
    def test_format_size(self, size, expected):
        assert format_size(size) == expected

    @pytest.mark.parametrize(
        "seconds,expected",
        [(0.4, "0s"), (45, "45s"), (60, "1m"), (135, "2m 15s"), (3600, "1h"), (3723, "1h 2m")],
    )
    def test_format_time(self, seconds, expected):
        assert format_time(seconds) == expected

    @pytest.mark.parametrize(
        "count,noun,expected",
        [
            (1, "file", "1 file"),
            (0, "file", "0 files"),
            (2, "directory", "2 directories"),
            (2, "alias", "2 aliases"),
        ],
    )
    def test_format_count(self, count, noun, expected):
        assert format_count(count, noun) == expected


class TestFileTree:
    def test_fallback_structure(self, tmp_path):
        root = tmp_path / "proj"
        (root / "src").mkdir(parents=True)
        (root / "src" / "a.ts").write_text("x")
        (root / "readme.md").write_text("x")

        tree = file_tree_fallback(root)

        assert tree.splitlines() == [
            "proj",
            "├── src",
            "│   └── a.ts",
            "└── readme.md",
        ]

    def test_fallback_respects_depth(self, tmp_path):
        root = tmp_path / "proj"
        (root / "a" / "b").mkdir(parents=True)
        (root / "a" / "b" / "deep.md").write_text("x")

        tree = file_tree_fallback(root, max_depth=1)

        assert "a" in tree
        assert "deep.md" not in tree

    def test_get_file_tree_without_tree_command(self, tmp_path, monkeypatch):
        (tmp_path / "note.md").write_text("x")

        def missing(*args, **kwargs):
            raise FileNotFoundError("tree")

        monkeypatch.setattr("notereviver.utils.file_ops.subprocess.run", missing)

        assert "note.md" in get_file_tree(tmp_path)
