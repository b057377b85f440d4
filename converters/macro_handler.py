"""Confluence storage-format macro handler.

Rewrites the structured macros embedded in a page body into plain HTML for
three targets: on-disk/preview HTML, print HTML for PDF rendering, and
Markdown-friendly HTML that markdownify turns into Markdown.

Code macros are pulled out first with a regex and replaced by random
placeholder tokens, so that no later pass (and no HTML->Markdown conversion)
ever touches literal code. The remaining macros are converted over a parsed
tree, innermost first, in a fixed order: images, expand, callouts, view-file,
table of contents.
"""

import html
import logging
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import quote

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .code_highlighter import code_block_html

logger = logging.getLogger('confluence_space_backup.converters.macrohandler')


class RenderTarget(Enum):
    """Output a body is being translated for."""
    PREVIEW = "preview"
    PRINT = "print"
    MARKDOWN = "markdown"


CODE_MACRO_PATTERN = re.compile(
    r'<ac:structured-macro\b[^>]*?\bac:name="(?P<name>code|noformat)"[^>]*(?<!/)>'
    r'(?P<head>(?:(?!</ac:structured-macro>|<ac:structured-macro\b).)*?)'
    r'<ac:plain-text-body>'
    r'(?:\s*<!\[CDATA\[(?P<cdata>.*?)\]\]>\s*|(?P<text>[^<]*))'
    r'</ac:plain-text-body>'
    r'.*?</ac:structured-macro>',
    re.DOTALL | re.IGNORECASE
)
LANGUAGE_PARAM_PATTERN = re.compile(
    r'<ac:parameter\b[^>]*\bac:name="language"[^>]*>\s*([^<]*?)\s*</ac:parameter>',
    re.IGNORECASE
)
CDATA_PATTERN = re.compile(r'<!\[CDATA\[(.*?)\]\]>', re.DOTALL)

# Confluence encodes "]]>" inside code as two adjacent CDATA sections
SPLIT_CDATA = ']]]]><![CDATA[>'

CALLOUT_TYPES = ('info', 'tip', 'note', 'warning', 'panel')
VIEW_FILE_MACROS = ('view-file', 'viewpdf', 'viewdoc', 'viewxls', 'viewppt')
DEFAULT_EXPAND_TITLE = 'Details'
TOC_MARKER = ' TOC removed '
ATTACHMENT_ICON = '📎'

_CALLOUT_LABELS = {
    'info': ('ℹ️', 'Info'),
    'tip': ('💡', 'Tip'),
    'note': ('📝', 'Note'),
    'warning': ('⚠️', 'Warning'),
    'panel': ('', ''),
}

_EMOTICONS = {
    'smile': '🙂',
    'sad': '🙁',
    'cheeky': '😛',
    'laugh': '😄',
    'wink': '😉',
    'thumbs-up': '👍',
    'thumbs-down': '👎',
    'information': 'ℹ️',
    'tick': '✅',
    'cross': '❌',
    'warning': '⚠️',
    'plus': '➕',
    'minus': '➖',
    'question': '❓',
    'light-on': '💡',
    'light-off': '💡',
    'yellow-star': '⭐',
    'red-star': '⭐',
    'green-star': '⭐',
    'blue-star': '⭐',
    'heart': '❤️',
    'broken-heart': '💔',
}


@dataclass
class CodeBlock:
    """A code macro body captured before the structural passes."""

    language: str
    code: str

    def to_html(self) -> str:
        return code_block_html(self.code, self.language)

    def to_fence(self) -> str:
        """Fenced Markdown block; the fence outgrows any backtick run in the code."""
        code = self.code.rstrip()
        longest_run = max((len(run) for run in re.findall(r'`+', code)), default=0)
        fence = '`' * max(3, longest_run + 1)
        return f"{fence}{self.language}\n{code}\n{fence}"


@dataclass
class TranslatedBody:
    """Result of running the macro passes over one body."""

    html: str
    code_blocks: Dict[str, CodeBlock] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def restore_code_html(self, text: str) -> str:
        """Replace placeholders with highlighted ``<pre><code>`` blocks."""
        for token, block in self.code_blocks.items():
            rendered = block.to_html()
            wrapped = placeholder_markup(token)
            if wrapped in text:
                text = text.replace(wrapped, rendered)
            else:
                text = text.replace(token, rendered)
        return text


def new_placeholder() -> str:
    """Collision-resistant opaque token; alphanumeric so converters leave it alone."""
    return f"CODEBLOCK{uuid.uuid4().hex}END"


def placeholder_markup(token: str) -> str:
    return f'<span>{token}</span>'


@dataclass
class _Translation:
    """Per-call state of one ``MacroHandler.translate`` run."""

    target: RenderTarget
    attachments_base: str
    stats: Dict[str, Any] = field(default_factory=lambda: {
        'macros_found': 0,
        'macros_converted': 0,
        'macros_failed': [],
        'by_type': {}
    })
    warnings: List[str] = field(default_factory=list)

    def found(self, name: str) -> None:
        self.stats['macros_found'] += 1

    def converted(self, name: str) -> None:
        self.stats['macros_converted'] += 1
        self.stats['by_type'][name] = self.stats['by_type'].get(name, 0) + 1

    def failed(self, name: str, warning: str) -> None:
        self.stats['macros_failed'].append(name)
        self.warnings.append(warning)


class MacroHandler:
    """Converts Confluence storage-format macros to plain HTML structures."""

    def __init__(self, logger: logging.Logger = None):
        """Initialize macro handler with optional logger."""
        self.logger = logger or logging.getLogger('confluence_space_backup.converters.macrohandler')

    def translate(
        self,
        storage: str,
        target: RenderTarget = RenderTarget.PREVIEW,
        attachments_base: Union[str, Path] = './attachments'
    ) -> TranslatedBody:
        """
        Run every macro pass over a storage-format body.

        Args:
            storage: Page body in Confluence storage format
            target: Output the HTML is destined for
            attachments_base: Relative URL base for preview output, or the
                absolute attachments directory for print output

        Returns:
            TranslatedBody holding HTML with code placeholders, the captured
            code blocks, conversion stats and warnings
        """
        run = _Translation(target=target, attachments_base=str(attachments_base))

        # Pass 1: code macros -> placeholders
        code_blocks: Dict[str, CodeBlock] = {}
        text = self._extract_code_macros(storage or '', code_blocks, run)

        # Any CDATA left belongs to non-code macros or links; keep it as text
        text = CDATA_PATTERN.sub(lambda m: html.escape(m.group(1), quote=False), text)

        soup = BeautifulSoup(text, 'html.parser')

        # Passes 2-6, order matters
        self._convert_images(soup, run)
        self._convert_macros(soup, ('expand',), self._convert_expand_macro, run)
        self._convert_macros(soup, CALLOUT_TYPES, self._convert_callout_macro, run)
        self._convert_macros(soup, VIEW_FILE_MACROS, self._convert_view_file_macro, run)
        self._convert_macros(soup, ('toc',), self._remove_toc_macro, run)

        self._convert_links(soup, run)
        self._convert_emoticons(soup)
        self._convert_unknown_macros(soup, run)

        self.logger.debug(
            f"Macro conversion: {run.stats['macros_converted']}/{run.stats['macros_found']} succeeded"
        )
        return TranslatedBody(html=str(soup), code_blocks=code_blocks, stats=run.stats, warnings=run.warnings)

    # ------------------------------------------------------------------
    # Pass 1: code
    # ------------------------------------------------------------------

    def _extract_code_macros(self, storage: str, code_blocks: Dict[str, CodeBlock], run: _Translation) -> str:
        """Replace code/noformat macros with placeholders, collecting their bodies."""
        def replace_code(match: re.Match) -> str:
            name = match.group('name').lower()
            run.found(name)
            language = ''
            if name == 'code':
                lang_match = LANGUAGE_PARAM_PATTERN.search(match.group('head'))
                if lang_match:
                    language = lang_match.group(1).strip()

            if match.group('cdata') is not None:
                code = match.group('cdata').replace(SPLIT_CDATA, ']]>')
            else:
                code = html.unescape(match.group('text') or '')
            code = code.replace('\r\n', '\n')

            token = new_placeholder()
            code_blocks[token] = CodeBlock(language=language, code=code)
            run.converted(name)
            return placeholder_markup(token)

        return CODE_MACRO_PATTERN.sub(replace_code, storage)

    # ------------------------------------------------------------------
    # Pass 2: images
    # ------------------------------------------------------------------

    def _convert_images(self, soup: BeautifulSoup, run: _Translation) -> None:
        for image in reversed(soup.find_all('ac:image')):
            run.found('image')
            self._safe_convert(image, 'image', lambda el=image: self._convert_image(soup, el, run), run)

    def _convert_image(self, soup: BeautifulSoup, element: Tag, run: _Translation) -> None:
        url_ref = element.find('ri:url')
        attachment_ref = element.find('ri:attachment')

        if url_ref is not None and url_ref.get('ri:value'):
            img = soup.new_tag('img', attrs={
                'src': url_ref['ri:value'],
                'alt': 'image',
                'style': 'max-width: 100%;',
            })
            element.replace_with(img)
        elif attachment_ref is not None and attachment_ref.get('ri:filename'):
            filename = attachment_ref['ri:filename']
            if run.target is RenderTarget.MARKDOWN:
                # Attachment images have no Markdown representation here
                element.decompose()
                return
            img = soup.new_tag('img', attrs={
                'src': self._attachment_src(filename, run),
                'alt': filename,
                'style': 'max-width: 100%;',
            })
            if run.target is RenderTarget.PREVIEW:
                img['loading'] = 'lazy'
            element.replace_with(img)
        else:
            raise ValueError("image macro without url or attachment reference")

    def _attachment_src(self, filename: str, run: _Translation) -> str:
        if run.target is RenderTarget.PRINT:
            return (Path(run.attachments_base) / filename).as_uri()
        return f"{run.attachments_base}/{quote(filename, safe='')}"

    # ------------------------------------------------------------------
    # Passes 3-6: structured macros
    # ------------------------------------------------------------------

    def _convert_macros(self, soup: BeautifulSoup, names,
                        converter: Callable[[BeautifulSoup, Tag, _Translation], None],
                        run: _Translation) -> None:
        """Apply a converter to every macro with one of ``names``, innermost first."""
        for name in names:
            for element in reversed(soup.find_all('ac:structured-macro', attrs={'ac:name': name})):
                run.found(name)
                self._safe_convert(element, name, lambda el=element: converter(soup, el, run), run)

    def _convert_expand_macro(self, soup: BeautifulSoup, element: Tag, run: _Translation) -> None:
        """Convert expand macro to a closed details > summary element."""
        title = self._extract_parameter(element, 'title') or DEFAULT_EXPAND_TITLE

        if run.target is RenderTarget.MARKDOWN:
            container = soup.new_tag('div', attrs={'class': 'expand'})
            label = soup.new_tag('p')
            strong = soup.new_tag('strong')
            strong.string = title
            label.append(strong)
            container.append(label)
        else:
            container = soup.new_tag('details')
            summary = soup.new_tag('summary')
            summary.string = title
            container.append(summary)

        self._move_body(element, container)
        element.replace_with(container)

    def _convert_callout_macro(self, soup: BeautifulSoup, element: Tag, run: _Translation) -> None:
        """Convert info/tip/note/warning/panel to a styled container."""
        callout_type = element.get('ac:name', 'panel').lower()
        title = self._extract_parameter(element, 'title')

        if run.target is RenderTarget.MARKDOWN:
            container = soup.new_tag('blockquote', attrs={'data-callout': callout_type})
            icon, label = _CALLOUT_LABELS.get(callout_type, ('', ''))
            heading = ' '.join(part for part in (icon, title or label) if part)
            if heading:
                heading_p = soup.new_tag('p')
                strong = soup.new_tag('strong')
                strong.string = heading
                heading_p.append(strong)
                container.append(heading_p)
        else:
            container = soup.new_tag('div', attrs={'class': f'callout callout-{callout_type}'})
            if title:
                title_p = soup.new_tag('p', attrs={'class': 'callout-title'})
                strong = soup.new_tag('strong')
                strong.string = title
                title_p.append(strong)
                container.append(title_p)

        self._move_body(element, container)
        element.replace_with(container)

    def _convert_view_file_macro(self, soup: BeautifulSoup, element: Tag, run: _Translation) -> None:
        """Convert view-file macro to an attachment link (text only in print output)."""
        attachment_ref = element.find('ri:attachment')
        if attachment_ref is None or not attachment_ref.get('ri:filename'):
            raise ValueError("view-file macro without attachment reference")
        filename = attachment_ref['ri:filename']

        if run.target is RenderTarget.PRINT:
            # The print document lives in a temporary directory, so a link
            # would dangle once rendering is done.
            span = soup.new_tag('span', attrs={'class': 'attachment-link'})
            span.append(f"{ATTACHMENT_ICON} {filename} ")
            path_note = soup.new_tag('small', attrs={'class': 'attachment-path'})
            path_note.string = f"(attachments/{filename})"
            span.append(path_note)
            element.replace_with(span)
            return

        base = './attachments' if run.target is RenderTarget.MARKDOWN else run.attachments_base
        link = soup.new_tag('a', attrs={
            'href': f"{base}/{quote(filename, safe='')}",
            'class': 'attachment-link',
        })
        link.string = f"{ATTACHMENT_ICON} {filename}"
        element.replace_with(link)

    def _remove_toc_macro(self, soup: BeautifulSoup, element: Tag, run: _Translation) -> None:
        """Drop the TOC macro; a static export has nothing for it to navigate."""
        element.replace_with(Comment(TOC_MARKER))

    # ------------------------------------------------------------------
    # Links, emoticons, leftovers
    # ------------------------------------------------------------------

    def _convert_links(self, soup: BeautifulSoup, run: _Translation) -> None:
        """Convert ac:link elements to anchors or plain text."""
        for link in reversed(soup.find_all('ac:link')):
            self._safe_convert(link, 'link', lambda el=link: self._convert_link(soup, el, run), run, counted=False)

    def _convert_link(self, soup: BeautifulSoup, element: Tag, run: _Translation) -> None:
        body = element.find(['ac:link-body', 'ac:plain-text-link-body'])
        label = body.get_text() if body is not None else ''

        attachment_ref = element.find('ri:attachment')
        page_ref = element.find('ri:page')
        url_ref = element.find('ri:url')

        if attachment_ref is not None and attachment_ref.get('ri:filename'):
            filename = attachment_ref['ri:filename']
            label = label or filename
            if run.target is RenderTarget.PRINT:
                element.replace_with(label)
                return
            base = './attachments' if run.target is RenderTarget.MARKDOWN else run.attachments_base
            anchor = soup.new_tag('a', attrs={'href': f"{base}/{quote(filename, safe='')}"})
            anchor.string = label
            element.replace_with(anchor)
        elif url_ref is not None and url_ref.get('ri:value'):
            anchor = soup.new_tag('a', attrs={'href': url_ref['ri:value']})
            anchor.string = label or url_ref['ri:value']
            element.replace_with(anchor)
        elif page_ref is not None:
            element.replace_with(label or page_ref.get('ri:content-title', ''))
        elif label:
            element.replace_with(label)
        else:
            element.decompose()

    def _convert_emoticons(self, soup: BeautifulSoup) -> None:
        for emoticon in soup.find_all('ac:emoticon'):
            name = emoticon.get('ac:name', '')
            replacement = (
                emoticon.get('ac:emoji-fallback')
                or _EMOTICONS.get(name)
                or f':{name}:'
            )
            emoticon.replace_with(replacement)

    def _convert_unknown_macros(self, soup: BeautifulSoup, run: _Translation) -> None:
        """Reduce unsupported macros to a neutral block holding their body."""
        for element in reversed(soup.find_all('ac:structured-macro')):
            macro_name = element.get('ac:name', 'unknown')
            run.found(macro_name)
            self.logger.warning(f"Converting unknown macro: {macro_name}")
            run.failed(macro_name, f"Unsupported macro type: {macro_name}")

            container = soup.new_tag('div', attrs={
                'class': 'macro-unsupported',
                'data-macro-name': macro_name,
            })
            plain_body = element.find('ac:plain-text-body', recursive=False)
            if element.find('ac:rich-text-body', recursive=False) is not None:
                self._move_body(element, container)
            elif plain_body is not None:
                pre = soup.new_tag('pre')
                pre.string = plain_body.get_text()
                container.append(pre)
            else:
                container.append(Comment(f" unsupported macro: {macro_name} "))
            element.replace_with(container)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _safe_convert(self, element: Tag, name: str, convert: Callable[[], None], run: _Translation,
                      counted: bool = True) -> None:
        """Run one substitution; on failure degrade the element to escaped text."""
        try:
            convert()
            if counted:
                run.converted(name)
        except Exception as e:
            self.logger.error(f"Failed to convert macro {name}: {str(e)}")
            run.failed(name, f"Failed to convert {name}: {str(e)}")
            if element.parent is not None:
                element.replace_with(NavigableString(element.get_text()))

    def _extract_parameter(self, element: Tag, param_name: str) -> Optional[str]:
        """Extract a macro parameter value from its direct ac:parameter children."""
        param = element.find('ac:parameter', attrs={'ac:name': param_name}, recursive=False)
        if param is None:
            return None
        value = param.get_text(strip=True)
        return value or None

    def _move_body(self, element: Tag, container: Tag) -> None:
        """Move the children of the macro's own rich-text body into container."""
        body = element.find('ac:rich-text-body', recursive=False)
        if body is None:
            return
        for child in list(body.contents):
            container.append(child.extract())


__all__ = [
    'CALLOUT_TYPES',
    'CodeBlock',
    'MacroHandler',
    'RenderTarget',
    'TranslatedBody',
    'new_placeholder',
    'placeholder_markup',
]
