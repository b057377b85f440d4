"""Syntax highlighting for code macro bodies using Pygments."""

import html
import logging
from typing import Optional

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

logger = logging.getLogger('confluence_space_backup.converters.codehighlighter')

# Confluence language names and common shorthands -> Pygments lexer aliases
LANGUAGE_ALIASES = {
    # Shell scripting
    'sh': 'bash',
    'shell': 'bash',
    'zsh': 'bash',
    'ksh': 'bash',
    'powershell': 'powershell',
    'ps1': 'powershell',

    # Scripting languages
    'py': 'python',
    'python3': 'python',
    'rb': 'ruby',
    'pl': 'perl',

    # JavaScript family
    'js': 'javascript',
    'jscript': 'javascript',
    'ts': 'typescript',

    # C family
    'c#': 'csharp',
    'cs': 'csharp',
    'c++': 'cpp',
    'cxx': 'cpp',
    'h': 'c',
    'hpp': 'cpp',
    'objc': 'objective-c',

    # Data formats
    'yml': 'yaml',
    'jsonc': 'json',

    # SQL dialects
    'mysql': 'mysql',
    'postgresql': 'postgresql',
    'plsql': 'plpgsql',
    'tsql': 'tsql',

    # Markup
    'md': 'markdown',
    'xhtml': 'html',

    # Other languages
    'golang': 'go',
    'rs': 'rust',
    'vb': 'vbnet',
    'actionscript3': 'actionscript3',
    'coldfusion': 'cfm',
    'erl': 'erlang',
    'kt': 'kotlin',

    # Build tools
    'dockerfile': 'docker',
    'terraform': 'hcl',

    # Plain text
    'none': 'text',
    'plain': 'text',
    'plaintext': 'text',
    'text': 'text',
    'patch': 'diff',
}

PYGMENTS_STYLE = 'default'


def normalize_language(language: Optional[str]) -> str:
    """Map a Confluence language name to its Pygments alias."""
    key = (language or '').strip().lower()
    return LANGUAGE_ALIASES.get(key, key)


def escape_code(code: str) -> str:
    """Escape code for embedding as plain text in HTML."""
    return html.escape(code, quote=True)


def highlight_code(code: str, language: Optional[str]) -> str:
    """
    Highlight code as HTML token spans.

    Args:
        code: Raw code text
        language: Language name from the macro (may be empty)

    Returns:
        Inner HTML for a ``<code>`` element. Without a language the code is
        only escaped; with an unknown language Pygments guesses the lexer;
        any highlighting error falls back to escaped text.
    """
    mapped = normalize_language(language)
    if not mapped:
        return escape_code(code)

    formatter = HtmlFormatter(nowrap=True)
    try:
        try:
            lexer = get_lexer_by_name(mapped, stripnl=False, ensurenl=False)
        except ClassNotFound:
            logger.debug(f"No lexer for '{mapped}', guessing from content")
            lexer = guess_lexer(code, stripnl=False, ensurenl=False)
        return highlight(code, lexer, formatter)
    except Exception as e:
        logger.warning(f"Highlighting failed for language '{language}': {e}")
        return escape_code(code)


def code_block_html(code: str, language: Optional[str]) -> str:
    """Build a ``<pre><code class="language-X">`` block for a code macro."""
    mapped = normalize_language(language)
    lang_class = f' class="language-{escape_code(mapped)}"' if mapped else ''
    return f'<pre><code{lang_class}>{highlight_code(code, language)}</code></pre>'


def highlight_stylesheet(selector: str = 'pre code') -> str:
    """CSS rules for the token classes emitted by highlight_code."""
    return HtmlFormatter(style=PYGMENTS_STYLE).get_style_defs(selector)


__all__ = [
    'LANGUAGE_ALIASES',
    'code_block_html',
    'escape_code',
    'highlight_code',
    'highlight_stylesheet',
    'normalize_language',
]
