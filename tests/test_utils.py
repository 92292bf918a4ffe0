"""Tests for utility modules."""
from pathlib import Path

import pytest

from storyteller.exceptions import ErrorCode, StorytellerError
from storyteller.utils.paths import find_project_root, to_import_specifier, validate_path_within
from storyteller.utils.result import Result
from storyteller.utils.text import dedupe, find_occurrences, normalize_newlines


class TestText:
    def test_normalize_newlines(self):
        assert normalize_newlines("a\r\nb\rc") == "a\nb\nc"
        assert normalize_newlines(None) == ""

    def test_find_occurrences_non_overlapping(self):
        assert find_occurrences("勇者と勇者", "勇者") == [0, 3]
        assert find_occurrences("aaa", "aa") == [0]
        assert find_occurrences("abc", "") == []

    def test_dedupe_keeps_order(self):
        assert dedupe(["b", "a", "b", "", None, "c"]) == ["b", "a", "c"]


class TestPaths:
    def test_find_project_root_walks_up(self, project):
        nested = project.root / "manuscripts" / "part1"
        nested.mkdir()
        assert find_project_root(nested) == project.root.resolve()

    def test_import_specifier(self, tmp_path):
        target = tmp_path / "src" / "characters" / "hero.ts"
        assert to_import_specifier(tmp_path / "manuscripts", target) == "../src/characters/hero.ts"
        assert to_import_specifier(tmp_path, target) == "./src/characters/hero.ts"

    def test_validate_path_within(self, tmp_path):
        assert validate_path_within(tmp_path / "a" / "b.ts", tmp_path) == (tmp_path / "a" / "b.ts").resolve()
        with pytest.raises(ValueError):
            validate_path_within(tmp_path / ".." / "escape.ts", tmp_path)


class TestResult:
    def test_success_and_failure(self):
        ok = Result.success(3)
        assert ok.is_success and not ok.is_failure
        assert ok.unwrap() == 3

        failed = Result.fail(ErrorCode.NOT_FOUND, "missing", "x.md")
        assert failed.is_failure
        assert str(failed.error) == "missing (x.md)"
        with pytest.raises(StorytellerError) as excinfo:
            failed.unwrap()
        assert excinfo.value.code == ErrorCode.NOT_FOUND
