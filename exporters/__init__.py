"""Export package for writing Confluence pages to a local backup tree.

Package Structure:
- filesystem: safe file names and directory/file/JSON writers
- document_renderer: standalone HTML and Markdown documents for a page
- pdf_renderer: headless Chromium session producing PDFs
- attachment_manager: attachment sources that fill a page's attachments/
"""

from .attachment_manager import AttachmentSource, LocalAttachmentSource, NullAttachmentSource
from .document_renderer import (
    VARIANT_PREVIEW,
    VARIANT_PRINT,
    DocumentContext,
    build_markdown_document,
    render_document,
)
from .filesystem import ensure_dir, sanitize_filename, write_json, write_text

__all__ = [
    'AttachmentSource',
    'DocumentContext',
    'LocalAttachmentSource',
    'NullAttachmentSource',
    'VARIANT_PREVIEW',
    'VARIANT_PRINT',
    'build_markdown_document',
    'ensure_dir',
    'render_document',
    'sanitize_filename',
    'write_json',
    'write_text',
]
