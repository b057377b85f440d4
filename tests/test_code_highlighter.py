"""Tests for code macro syntax highlighting."""

import unittest
from unittest.mock import patch

from converters.code_highlighter import (
    code_block_html,
    escape_code,
    highlight_code,
    highlight_stylesheet,
    normalize_language,
)


class TestNormalizeLanguage(unittest.TestCase):
    def test_aliases(self):
        self.assertEqual(normalize_language('js'), 'javascript')
        self.assertEqual(normalize_language('py'), 'python')
        self.assertEqual(normalize_language('C#'), 'csharp')
        self.assertEqual(normalize_language('c++'), 'cpp')
        self.assertEqual(normalize_language('ts'), 'typescript')
        self.assertEqual(normalize_language('rb'), 'ruby')
        self.assertEqual(normalize_language('yml'), 'yaml')
        self.assertEqual(normalize_language('Shell'), 'bash')
        self.assertEqual(normalize_language('sh'), 'bash')

    def test_passthrough_and_empty(self):
        self.assertEqual(normalize_language('python'), 'python')
        self.assertEqual(normalize_language(' Go '), 'go')
        self.assertEqual(normalize_language(None), '')
        self.assertEqual(normalize_language(''), '')


class TestHighlightCode(unittest.TestCase):
    def test_known_language_produces_token_spans(self):
        result = highlight_code('print(1)', 'py')
        self.assertIn('<span', result)
        self.assertIn('print', result)

    def test_no_language_is_escaped_only(self):
        self.assertEqual(highlight_code('<a href="x">', ''), '&lt;a href=&quot;x&quot;&gt;')

    def test_unknown_language_is_guessed(self):
        result = highlight_code('<html><body></body></html>', 'not-a-real-language')
        self.assertIn('&lt;', result)
        self.assertNotIn('<html>', result)

    def test_highlighting_error_falls_back_to_escaped(self):
        with patch('converters.code_highlighter.highlight', side_effect=RuntimeError('boom')):
            result = highlight_code('a < b', 'python')
        self.assertEqual(result, escape_code('a < b'))

    def test_code_block_wrapper(self):
        block = code_block_html('let x = 1;', 'js')
        self.assertTrue(block.startswith('<pre><code class="language-javascript">'))
        self.assertTrue(block.endswith('</code></pre>'))

    def test_code_block_without_language(self):
        self.assertEqual(code_block_html('x & y', ''), '<pre><code>x &amp; y</code></pre>')

    def test_stylesheet_scoped_to_selector(self):
        css = highlight_stylesheet('pre code')
        self.assertIn('pre code', css)


if __name__ == '__main__':
    unittest.main()
