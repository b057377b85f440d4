"""Storage format to Markdown conversion built on markdownify."""

import logging
import re
from typing import Any, Dict, List, Tuple

from markdownify import MarkdownConverter as MarkdownifyConverter

from .macro_handler import MacroHandler, RenderTarget, TranslatedBody

logger = logging.getLogger('confluence_space_backup.converters.markdownconverter')

# Leading blockquote markers and indentation that a spliced block must repeat
_LINE_PREFIX = re.compile(r'^[ \t]*(?:>[ \t]?)*')
_LIST_MARKER = re.compile(r'^(?:[-*+]|\d+[.)])[ \t]+')


class MarkdownConverter(MarkdownifyConverter):
    """
    Converts a page body in storage format to Markdown.

    Pipeline:
    1. MacroHandler rewrites macros into Markdown-friendly HTML, leaving code
       macros as placeholder tokens
    2. markdownify converts the HTML
    3. Blank-line cleanup
    4. Placeholders are spliced back as fenced code blocks

    Cleanup runs before the splice so that code content is never altered.
    """

    def __init__(self, logger: logging.Logger = None, config: Dict[str, Any] = None, **kwargs):
        """Initialize markdown converter with logger and configuration."""
        markdownify_options = {
            'heading_style': 'ATX',  # Use # for headings
            'bullets': '-',  # Use - for unordered lists
            'escape_asterisks': False,
            'escape_underscores': False,
            'escape_misc': False,
            'wrap': False,
        }
        markdownify_options.update(kwargs)
        super().__init__(**markdownify_options)

        self.logger = logger or logging.getLogger('confluence_space_backup.converters.markdownconverter')
        self.config = config or {}
        self.macro_handler = MacroHandler(self.logger)

    def convert_storage(self, storage: str) -> Tuple[str, TranslatedBody]:
        """
        Convert a storage-format body to Markdown.

        Args:
            storage: Page body in Confluence storage format

        Returns:
            Tuple of (markdown, translated body with macro stats and warnings)
        """
        translated = self.macro_handler.translate(storage or '', RenderTarget.MARKDOWN)

        markdown = super().convert(translated.html)
        markdown = self._final_cleanup(markdown)
        markdown = self._restore_code_blocks(markdown, translated)

        return markdown.strip(), translated

    def _final_cleanup(self, markdown: str) -> str:
        """Final cleanup pass - remove excessive blank lines and trailing spaces."""
        markdown = '\n'.join(line.rstrip() for line in markdown.split('\n'))
        markdown = re.sub(r'\n{3,}', '\n\n', markdown)
        return markdown.strip()

    def _restore_code_blocks(self, markdown: str, translated: TranslatedBody) -> str:
        """Splice fenced code blocks back in place of their placeholder tokens."""
        for token, block in translated.code_blocks.items():
            if token not in markdown:
                self.logger.warning("Code block placeholder lost during conversion")
                translated.warnings.append("Code block placeholder lost during conversion")
                continue
            markdown = self._splice_block(markdown, token, block.to_fence().split('\n'))
        return markdown

    def _splice_block(self, markdown: str, token: str, block_lines: List[str]) -> str:
        """
        Replace the line holding ``token`` with ``block_lines``.

        Blockquote markers and indentation in front of the token are repeated
        on every block line, so code inside a callout or list item stays there.
        """
        output = []
        for line in markdown.split('\n'):
            index = line.find(token)
            if index < 0:
                output.append(line)
                continue

            before, after = line[:index], line[index + len(token):]
            prefix = _LINE_PREFIX.match(before).group(0)
            lead_text = before[len(prefix):]

            if lead_text.strip():
                output.append(before.rstrip())
                marker = _LIST_MARKER.match(lead_text)
                if marker:
                    # Continuation lines of a list item are indented past its marker
                    prefix = prefix + ' ' * len(marker.group(0))

            for block_line in block_lines:
                output.append((prefix + block_line) if block_line else prefix.rstrip())

            if after.strip():
                output.append(prefix + after.strip())

        return '\n'.join(output)

    def convert_div(self, el, text, parent_tags=None, **kwargs):
        """Expand and unsupported-macro containers render as their content."""
        if parent_tags is not None and '_inline' in parent_tags:
            return ' ' + text.strip() + ' '
        text = text.strip()
        return f"\n\n{text}\n\n" if text else ''


__all__ = ['MarkdownConverter']
