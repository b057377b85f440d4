"""Tests for filename sanitizing and file writers."""

import json

import pytest

from exporters.filesystem import (
    FALLBACK_FILENAME,
    MAX_FILENAME_LENGTH,
    sanitize_filename,
    write_json,
    write_text,
)


class TestSanitizeFilename:
    """Test title to directory-name mapping."""

    def test_replaces_forbidden_characters_and_whitespace(self):
        assert sanitize_filename('My Page: Overview') == 'My_Page_Overview'
        assert sanitize_filename('a/b\\c*d?e"f<g>h|i') == 'a_b_c_d_e_f_g_h_i'
        assert sanitize_filename('tab\tand\nnewline') == 'tab_and_newline'

    def test_collapses_and_strips_underscores(self):
        assert sanitize_filename('  __x__  ') == 'x'
        assert sanitize_filename('a___b') == 'a_b'

    @pytest.mark.parametrize('title', [None, '', '   ', '???', '///', '___'])
    def test_empty_results_fall_back(self, title):
        assert sanitize_filename(title) == FALLBACK_FILENAME

    def test_keeps_unicode(self):
        assert sanitize_filename('한글 제목') == '한글_제목'

    def test_truncates_long_titles(self):
        result = sanitize_filename('a' * 200)
        assert len(result) == MAX_FILENAME_LENGTH

    def test_truncation_does_not_leave_trailing_underscore(self):
        result = sanitize_filename('a' * 119 + ' b')
        assert result == 'a' * 119

    @pytest.mark.parametrize('title', [
        'Simple',
        'My Page: Overview',
        'a' * 119 + ' b',
        'x' * 300,
        ' leading and trailing ',
        'Q&A / FAQ?',
        '한글 제목',
    ])
    def test_idempotent(self, title):
        once = sanitize_filename(title)
        assert sanitize_filename(once) == once
        assert once
        assert len(once) <= MAX_FILENAME_LENGTH
        assert not any(ch in once for ch in '\\/:*?"<>| \t\n')


class TestWriters:
    """Test text and JSON writers."""

    def test_write_text_creates_parents(self, tmp_path):
        target = tmp_path / 'a' / 'b' / 'file.txt'
        write_text(target, 'héllo')
        assert target.read_text(encoding='utf-8') == 'héllo'

    def test_write_json_is_indented_and_unescaped(self, tmp_path):
        target = tmp_path / 'data.json'
        write_json(target, {'title': '제목', 'n': [1]})
        content = target.read_text(encoding='utf-8')
        assert '제목' in content
        assert '\n  "title"' in content
        assert json.loads(content) == {'title': '제목', 'n': [1]}
