"""Standalone HTML and Markdown documents for exported pages."""

import html
from dataclasses import dataclass
from typing import Dict, Optional

from models import Page
from converters.code_highlighter import highlight_stylesheet

VARIANT_PREVIEW = 'preview'
VARIANT_PRINT = 'print'
UNKNOWN_LABEL = 'Unknown'
ROOT_PARENT_LABEL = '- (Root)'

_SHARED_CSS = """
.callout { padding: 1rem; border-radius: 8px; margin: 1rem 0; border-left: 4px solid; }
.callout-info { background-color: #e7f3ff; border-left-color: #0066cc; }
.callout-tip { background-color: #e6f7e6; border-left-color: #28a745; }
.callout-note { background-color: #fff8e6; border-left-color: #ffc107; }
.callout-warning { background-color: #ffebe6; border-left-color: #dc3545; }
.callout-panel { background-color: #f5f5f7; border-left-color: #6c757d; }
.callout-title { margin-top: 0; }
.attachment-link { display: inline-flex; align-items: center; gap: 0.25rem; color: #0066cc; }
.attachment-path { color: #6c757d; }
.macro-unsupported { border: 1px dashed #adb5bd; padding: 0.5rem 1rem; margin: 1rem 0; }
details { margin: 1rem 0; }
details summary { cursor: pointer; font-weight: 600; padding: 0.5rem; background: #f5f5f7; border-radius: 4px; }
details[open] summary { margin-bottom: 0.5rem; }
pre { background: #f6f8fa; padding: 1em; overflow-x: auto; border-radius: 6px; }
code { font-family: SFMono-Regular, Consolas, "Liberation Mono", monospace; font-size: 0.9em; }
table { border-collapse: collapse; margin: 1em 0; }
th, td { border: 1px solid #d0d7de; padding: 0.4em 0.6em; text-align: left; vertical-align: top; }
th { background: #f6f8fa; }
img { max-width: 100%; }
"""

_PREVIEW_CSS = """
body { font-family: system-ui, -apple-system, "Segoe UI", sans-serif; background: #f9fafb; color: #111827; margin: 0; padding: 2rem; line-height: 1.6; }
.page { max-width: 56rem; margin: 0 auto; }
header h1 { font-size: 1.875rem; margin: 0 0 0.5rem; }
.page-meta { display: flex; flex-wrap: wrap; gap: 1rem; font-size: 0.875rem; color: #6b7280; }
main.content { background: #fff; border-radius: 0.75rem; padding: 1.5rem; margin-top: 1.5rem; box-shadow: 0 1px 2px rgba(0, 0, 0, 0.05); }
footer { margin-top: 2rem; padding-top: 1rem; border-top: 1px solid #e5e7eb; text-align: center; font-size: 0.875rem; color: #9ca3af; }
"""

_PRINT_CSS = """
@page { size: A4; margin: 1cm; }
body { font-family: "Helvetica Neue", Arial, sans-serif; font-size: 11pt; color: #000; margin: 0; line-height: 1.5; }
header h1 { font-size: 20pt; margin: 0 0 0.3rem; }
.page-meta { font-size: 9pt; color: #444; }
.page-meta span { margin-right: 1rem; }
main.content { margin-top: 1rem; }
pre, .callout, table, img { page-break-inside: avoid; }
pre { white-space: pre-wrap; word-wrap: break-word; }
details > * { display: block; }
footer { margin-top: 1.5rem; padding-top: 0.5rem; border-top: 1px solid #ccc; font-size: 8pt; color: #666; text-align: center; }
"""


@dataclass
class DocumentContext:
    """Labels for the metadata header, resolved from the job's page map."""

    space_label: str
    parent_label: str

    @classmethod
    def for_page(cls, page: Page, space_name: str = '',
                 page_map: Optional[Dict[str, Page]] = None) -> 'DocumentContext':
        """
        Resolve the space and parent labels for a page.

        Space: ``"spaceId (spaceName)"``; parent: ``"parentId (parentTitle)"``
        or ``"- (Root)"``. Missing names show as ``Unknown``.
        """
        space_label = f"{page.space_id} ({space_name or UNKNOWN_LABEL})"
        if page.parent_id:
            parent = (page_map or {}).get(page.parent_id)
            parent_title = parent.title if parent is not None else ''
            parent_label = f"{page.parent_id} ({parent_title or UNKNOWN_LABEL})"
        else:
            parent_label = ROOT_PARENT_LABEL
        return cls(space_label=space_label, parent_label=parent_label)


def render_document(page: Page, body_html: str, context: DocumentContext,
                    variant: str = VARIANT_PREVIEW) -> str:
    """
    Wrap a translated body in a complete HTML document.

    Args:
        page: Page being rendered
        body_html: Body fragment produced by the macro translator
        context: Space and parent labels
        variant: ``preview`` for on-disk viewing, ``print`` for PDF rendering

    Returns:
        HTML5 document; the print variant carries A4 page rules and no
        screen-only decoration
    """
    if variant not in (VARIANT_PREVIEW, VARIANT_PRINT):
        raise ValueError(f"Unknown document variant: {variant}")

    variant_css = _PRINT_CSS if variant == VARIANT_PRINT else _PREVIEW_CSS
    title = html.escape(page.title or '')
    space_label = html.escape(context.space_label)
    parent_label = html.escape(context.parent_label)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{title}</title>
<style>
{variant_css}
{_SHARED_CSS}
{highlight_stylesheet('pre code')}
</style>
</head>
<body class="{variant}">
<div class="page">
<header>
<h1>{title}</h1>
<div class="page-meta">
<span><strong>ID</strong> {html.escape(page.id)}</span>
<span><strong>Space</strong> {space_label}</span>
<span><strong>Parent</strong> {parent_label}</span>
<span><strong>Status</strong> {html.escape(page.status or '')}</span>
<span><strong>Created</strong> {html.escape(page.created_at or '')}</span>
</div>
</header>
<main class="content">
{body_html}
</main>
<footer>
Exported from Confluence space {space_label} · Local backup view
</footer>
</div>
</body>
</html>
"""


def build_markdown_document(page: Page, body_md: str, context: DocumentContext) -> str:
    """Prefix a Markdown body with the page title and a metadata comment."""
    header = (
        f"# {page.title}\n\n"
        f"<!-- id: {page.id} | space: {context.space_label} | "
        f"parent: {context.parent_label} | status: {page.status} -->\n\n"
    )
    return header + body_md


__all__ = [
    'DocumentContext',
    'VARIANT_PREVIEW',
    'VARIANT_PRINT',
    'build_markdown_document',
    'render_document',
]
