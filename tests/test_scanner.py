"""Tests for the local inventory scanner."""

import os
from datetime import timezone
from pathlib import Path

from ftpupdater.scanner import ExclusionFilter, InventoryScanner, LocalFile


def _make_tree(root: Path) -> None:
    (root / "index.html").write_text("index")
    (root / "img").mkdir()
    (root / "img" / "a.png").write_bytes(b"png")
    (root / "img" / "icons").mkdir()
    (root / "img" / "icons" / "b.ico").write_bytes(b"ico")
    (root / "notes.TMP").write_text("tmp")


class TestLocalFile:
    """Tests for LocalFile."""

    def test_from_path(self, temp_dir):
        file_path = temp_dir / "sub" / "file.txt"
        file_path.parent.mkdir()
        file_path.write_text("content")

        local_file = LocalFile.from_path(file_path, temp_dir)

        assert local_file.path == file_path
        assert local_file.relative_path == "sub/file.txt"
        assert local_file.modified.tzinfo == timezone.utc
        assert local_file.read_bytes() == b"content"

    def test_modified_is_at_least_write_time(self, temp_dir):
        file_path = temp_dir / "file.txt"
        file_path.write_text("content")
        os.utime(file_path, (1_600_000_000, 1_600_000_000))

        local_file = LocalFile.from_path(file_path, temp_dir)

        assert local_file.modified.timestamp() >= 1_600_000_000


class TestExclusionFilter:
    """Tests for ExclusionFilter."""

    def test_case_insensitive_search(self):
        exclusion = ExclusionFilter(r"\.tmp$")
        assert exclusion.matches("cache/A.TMP")
        assert not exclusion.matches("cache/a.txt")

    def test_matches_anywhere_in_path(self):
        assert ExclusionFilter("thumbs").matches("img/Thumbs.db")

    def test_empty_pattern_excludes_nothing(self):
        assert not ExclusionFilter("").matches("anything")
        assert not ExclusionFilter(None).matches("anything")


class TestInventoryScanner:
    """Tests for InventoryScanner."""

    def test_top_level_only(self, temp_dir):
        _make_tree(temp_dir)

        inventory = InventoryScanner(recursive=False).scan(temp_dir)

        assert sorted(inventory) == ["index.html", "notes.TMP"]

    def test_recursive(self, temp_dir):
        _make_tree(temp_dir)

        inventory = InventoryScanner(recursive=True).scan(temp_dir)

        assert sorted(inventory) == [
            "img/a.png",
            "img/icons/b.ico",
            "index.html",
            "notes.TMP",
        ]
        assert inventory["img/icons/b.ico"].path == temp_dir / "img" / "icons" / "b.ico"

    def test_exclusion_applied_to_relative_path(self, temp_dir):
        _make_tree(temp_dir)

        inventory = InventoryScanner(recursive=True, exclude=r"\.tmp$|^img/icons/").scan(
            temp_dir
        )

        assert sorted(inventory) == ["img/a.png", "index.html"]

    def test_keys_are_case_insensitive(self, temp_dir):
        _make_tree(temp_dir)

        inventory = InventoryScanner(recursive=True).scan(temp_dir)

        assert "IMG/A.PNG" in inventory
        assert inventory["Index.HTML"].relative_path == "index.html"

    def test_relative_paths_have_no_leading_slash(self, temp_dir):
        _make_tree(temp_dir)

        inventory = InventoryScanner(recursive=True).scan(temp_dir)

        for path in inventory:
            assert not path.startswith("/")
            assert not path.endswith("/")
            assert "\\" not in path
            assert ".." not in path.split("/")

    def test_empty_directory(self, temp_dir):
        assert len(InventoryScanner(recursive=True).scan(temp_dir)) == 0

    def test_missing_directory_yields_empty_inventory(self, temp_dir):
        inventory = InventoryScanner().scan(temp_dir / "missing")
        assert len(inventory) == 0
