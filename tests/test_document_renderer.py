"""Tests for standalone document rendering."""

import unittest

from models import Page
from exporters.document_renderer import (
    DocumentContext,
    VARIANT_PREVIEW,
    VARIANT_PRINT,
    build_markdown_document,
    render_document,
)


class TestDocumentContext(unittest.TestCase):
    def setUp(self):
        self.root = Page(id='1', title='Home', space_id='S1', parent_type='space')
        self.child = Page(id='2', title='Child', space_id='S1', parent_id='1', parent_type='page')
        self.page_map = {'1': self.root, '2': self.child}

    def test_root_page_labels(self):
        context = DocumentContext.for_page(self.root, 'Docs', self.page_map)
        self.assertEqual(context.space_label, 'S1 (Docs)')
        self.assertEqual(context.parent_label, '- (Root)')

    def test_child_page_labels(self):
        context = DocumentContext.for_page(self.child, '', self.page_map)
        self.assertEqual(context.space_label, 'S1 (Unknown)')
        self.assertEqual(context.parent_label, '1 (Home)')

    def test_unknown_parent(self):
        orphan = Page(id='3', title='Orphan', space_id='S1', parent_id='99', parent_type='page')
        context = DocumentContext.for_page(orphan, 'Docs', self.page_map)
        self.assertEqual(context.parent_label, '99 (Unknown)')


class TestRenderDocument(unittest.TestCase):
    def setUp(self):
        self.page = Page(
            id='7', title='Q&A <draft>', space_id='S1', status='current',
            created_at='2024-01-01T00:00:00Z', parent_type='space'
        )
        self.context = DocumentContext(space_label='S1 (Docs)', parent_label='- (Root)')

    def test_preview_document(self):
        doc = render_document(self.page, '<p>Body</p>', self.context, VARIANT_PREVIEW)

        self.assertTrue(doc.startswith('<!DOCTYPE html>'))
        self.assertIn('<title>Q&amp;A &lt;draft&gt;</title>', doc)
        self.assertIn('<main class="content">\n<p>Body</p>\n</main>', doc)
        self.assertIn('<strong>ID</strong> 7', doc)
        self.assertIn('<strong>Space</strong> S1 (Docs)', doc)
        self.assertIn('<strong>Parent</strong> - (Root)', doc)
        self.assertIn('<strong>Status</strong> current', doc)
        self.assertIn('<strong>Created</strong> 2024-01-01T00:00:00Z', doc)
        self.assertIn('Exported from Confluence space S1 (Docs) · Local backup view', doc)
        self.assertIn('.callout-info', doc)
        self.assertIn('pre code', doc)
        self.assertNotIn('@page', doc)

    def test_print_document(self):
        doc = render_document(self.page, '<p>Body</p>', self.context, VARIANT_PRINT)
        self.assertIn('@page { size: A4; margin: 1cm; }', doc)
        self.assertIn('.callout-warning', doc)
        self.assertNotIn('<script', doc)
        self.assertNotIn('<link', doc)

    def test_deterministic(self):
        first = render_document(self.page, '<p>x</p>', self.context)
        second = render_document(self.page, '<p>x</p>', self.context)
        self.assertEqual(first, second)

    def test_unknown_variant(self):
        with self.assertRaises(ValueError):
            render_document(self.page, '', self.context, 'poster')


class TestMarkdownDocument(unittest.TestCase):
    def test_header(self):
        page = Page(id='2', title='Child', space_id='S1', parent_id='1', parent_type='page', status='current')
        context = DocumentContext(space_label='S1 (Docs)', parent_label='1 (Home)')

        doc = build_markdown_document(page, 'Body text', context)

        self.assertEqual(
            doc,
            '# Child\n\n'
            '<!-- id: 2 | space: S1 (Docs) | parent: 1 (Home) | status: current -->\n\n'
            'Body text'
        )


if __name__ == '__main__':
    unittest.main()
