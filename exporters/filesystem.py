"""Filesystem helpers: safe names, directory creation and file writes."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger('confluence_space_backup.exporters.filesystem')

# Windows-forbidden characters plus any whitespace
_FORBIDDEN_RUN = re.compile(r'[\\/:*?"<>|\s]+')
_UNDERSCORE_RUN = re.compile(r'_+')

MAX_FILENAME_LENGTH = 120
FALLBACK_FILENAME = 'untitled'


def sanitize_filename(title: Optional[str]) -> str:
    """
    Convert a page title to a filesystem-safe name.

    Args:
        title: Page title (may be empty or None)

    Returns:
        Name without forbidden characters or whitespace, at most 120
        characters long, never empty

    Example:
        >>> sanitize_filename('My Page: Overview')
        'My_Page_Overview'
        >>> sanitize_filename('')
        'untitled'
    """
    sanitized = (title or '').strip()
    sanitized = _FORBIDDEN_RUN.sub('_', sanitized)
    sanitized = _UNDERSCORE_RUN.sub('_', sanitized)
    sanitized = sanitized.strip('_')

    # Truncation can expose a trailing underscore; strip it again so the
    # result is a fixed point of this function.
    sanitized = sanitized[:MAX_FILENAME_LENGTH].rstrip('_')

    return sanitized or FALLBACK_FILENAME


def ensure_dir(dir_path: Union[str, Path]) -> Path:
    """Create a directory (and parents) if it does not exist."""
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_text(file_path: Union[str, Path], content: str) -> Path:
    """Write UTF-8 text, creating the parent directory first."""
    path = Path(file_path)
    ensure_dir(path.parent)
    path.write_text(content, encoding='utf-8')
    logger.debug(f"Wrote {path}")
    return path


def write_json(file_path: Union[str, Path], data: Any) -> Path:
    """Write data as indented JSON."""
    return write_text(file_path, json.dumps(data, indent=2, ensure_ascii=False))


__all__ = [
    'FALLBACK_FILENAME',
    'MAX_FILENAME_LENGTH',
    'ensure_dir',
    'sanitize_filename',
    'write_json',
    'write_text',
]
