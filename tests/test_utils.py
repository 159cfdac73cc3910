"""Unit tests for utility functions."""

from datetime import timezone

from ftpupdater.utils import (
    PathMap,
    ancestor_paths,
    combine_path,
    parent_path,
    utc_from_timestamp,
)


class TestCombinePath:
    """Tests for combine_path function."""

    def test_strips_slashes_and_empty_parts(self):
        assert combine_path("/www/", "", "/site/", "img/a.png") == "www/site/img/a.png"

    def test_all_empty(self):
        assert combine_path("", "/", "") == ""

    def test_single_part(self):
        assert combine_path("a.txt") == "a.txt"


class TestAncestorPaths:
    """Tests for ancestor_paths function."""

    def test_nested_path_root_first(self):
        assert ancestor_paths("a/b/c.txt") == ["a", "a/b"]

    def test_top_level_file(self):
        assert ancestor_paths("c.txt") == []


class TestParentPath:
    """Tests for parent_path function."""

    def test_nested(self):
        assert parent_path("img/icons/a.png") == "img/icons"

    def test_top_level(self):
        assert parent_path("a.png") == ""


class TestUtcFromTimestamp:
    """Tests for utc_from_timestamp function."""

    def test_is_timezone_aware(self):
        result = utc_from_timestamp(0)
        assert result.tzinfo == timezone.utc
        assert result.year == 1970


class TestPathMap:
    """Tests for the case-insensitive PathMap."""

    def test_lookup_ignores_case(self):
        m = PathMap()
        m["Img/A.png"] = 1
        assert m["img/a.PNG"] == 1
        assert "IMG/A.PNG" in m

    def test_last_write_wins_on_case_collision(self):
        m = PathMap()
        m["a.txt"] = 1
        m["A.TXT"] = 2
        assert len(m) == 1
        assert m["a.txt"] == 2
        assert list(m) == ["A.TXT"]

    def test_delete_ignores_case(self):
        m = PathMap({"Docs/Readme.md": 1})
        del m["docs/readme.md"]
        assert len(m) == 0

    def test_non_string_not_contained(self):
        assert 1 not in PathMap({"a": 1})

    def test_copy_is_independent(self):
        m = PathMap({"a": 1})
        copy = m.copy()
        copy["b"] = 2
        assert "b" not in m
        assert isinstance(copy, PathMap)
