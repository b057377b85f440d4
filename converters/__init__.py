"""Converters package for Confluence storage format to HTML and Markdown."""

import logging
from pathlib import Path
from typing import Union

from models import Page, PagePreview

from .code_highlighter import code_block_html, highlight_code, highlight_stylesheet
from .macro_handler import MacroHandler, RenderTarget, TranslatedBody
from .markdown_converter import MarkdownConverter

logger = logging.getLogger('confluence_space_backup.converters')


def translate_to_html(body: str, target: RenderTarget, attachments_base: Union[str, Path],
                      logger: logging.Logger = None) -> TranslatedBody:
    """Run the macro passes for an HTML target and restore highlighted code."""
    handler = MacroHandler(logger or logging.getLogger('confluence_space_backup.converters'))
    translated = handler.translate(body or '', target, attachments_base)
    translated.html = translated.restore_code_html(translated.html)
    return translated


def convert_body_to_html(body: str, attachments_base: str = './attachments') -> str:
    """
    Convert a storage-format body to an HTML fragment for on-disk viewing.

    Args:
        body: Page body in Confluence storage format
        attachments_base: URL prefix for attachment references

    Returns:
        HTML fragment
    """
    return translate_to_html(body, RenderTarget.PREVIEW, attachments_base).html


def convert_body_to_print_html(body: str, attachments_dir: Union[str, Path]) -> str:
    """Convert a body to HTML whose attachment images use absolute file:// URLs."""
    return translate_to_html(body, RenderTarget.PRINT, Path(attachments_dir).resolve()).html


def convert_body_to_markdown(body: str) -> str:
    """Convert a storage-format body to Markdown."""
    markdown, _ = MarkdownConverter().convert_storage(body or '')
    return markdown


def preview_page(page: Page, attachments_base: str = './attachments') -> PagePreview:
    """
    Render a single page body in both formats without touching the filesystem.

    Example:
        >>> from converters import preview_page
        >>> preview = preview_page(page, attachments_base=f'/api/attachments/{page.id}')
        >>> print(preview.markdown)
    """
    body = page.body or ''
    return PagePreview(
        html=convert_body_to_html(body, attachments_base),
        markdown=convert_body_to_markdown(body),
    )


__all__ = [
    'MacroHandler',
    'MarkdownConverter',
    'RenderTarget',
    'TranslatedBody',
    'code_block_html',
    'convert_body_to_html',
    'convert_body_to_markdown',
    'convert_body_to_print_html',
    'highlight_code',
    'highlight_stylesheet',
    'preview_page',
    'translate_to_html',
]
