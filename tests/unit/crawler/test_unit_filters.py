# tests/unit/crawler/test_unit_filters.py — v1
"""Tests for crawler/filters.py — include/exclude rules."""

from __future__ import annotations

import pytest

from fsingest.crawler.filters import (
    is_excluded,
    is_file_size_under_limit,
    is_included,
    is_indexable,
)


class TestIsIndexable:
    def test_tilde_files_always_excluded(self):
        assert not is_indexable("report~.doc", [], [])
        assert not is_indexable("/sub/~$lock.docx", ["*.docx"], [])

    def test_include_match(self):
        assert is_indexable("x.doc", ["*.doc"], [])

    def test_exclude_match(self):
        assert not is_indexable("x.doc", [], ["*.doc"])

    def test_exclude_wins_over_include(self):
        assert not is_indexable("/a/x.doc", ["*.doc"], ["x.*"])

    def test_no_rules_indexes_everything(self):
        assert is_indexable("/a/b/anything.bin", [], [])
        assert is_indexable("/a/b/anything.bin", None, None)

    def test_not_included(self):
        assert not is_indexable("/a/x.pdf", ["*.doc"], [])

    def test_case_sensitive(self):
        assert not is_indexable("/a/X.DOC", ["*.doc"], [])

    def test_question_mark_is_one_character(self):
        assert is_indexable("/a/x1.doc", ["x?.doc"], [])
        assert not is_indexable("/a/x.doc", ["x?.doc"], [])
        assert not is_indexable("/a/x12.doc", ["x?.doc"], [])

    def test_basename_pattern_does_not_cross_separator(self):
        assert not is_excluded("/tmp/a/x.doc", ["tmp*"])

    def test_path_pattern_crosses_separator(self):
        assert is_excluded("/tmp/a/x.doc", ["/tmp/*"])
        assert is_excluded("/sub/cache/deep/x.bin", ["*/cache/*"])

    def test_directories_traversed_unless_excluded(self):
        assert is_indexable("/folder", ["*.txt"], [], directory=True)
        assert not is_indexable("/folder", ["*.txt"], ["folder"], directory=True)


class TestHelpers:
    def test_is_included_empty(self):
        assert is_included("/x", [])

    def test_is_excluded_empty(self):
        assert not is_excluded("/x", [])


class TestFileSizeLimit:
    @pytest.mark.parametrize("limit,size,expected", [
        (None, 10**12, True),
        (100, 99, True),
        (100, 100, True),
        (100, 101, False),
    ])
    def test_limit(self, limit, size, expected):
        assert is_file_size_under_limit(limit, size) is expected
