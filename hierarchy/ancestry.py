"""Ancestor chains and the nested output directories derived from them."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Union

from models import AncestorEntry, Page
from exporters.filesystem import ensure_dir, sanitize_filename

logger = logging.getLogger('confluence_space_backup.hierarchy.ancestry')

PAGES_DIRECTORY = 'pages'

# Most filesystems cap a single name at 255 bytes
MAX_FOLDER_NAME_BYTES = 240


def build_page_map(pages: Iterable[Page]) -> Dict[str, Page]:
    """Index pages by id."""
    return {page.id: page for page in pages if page.id}


def get_ancestor_chain(page_id: str, page_map: Dict[str, Page]) -> List[AncestorEntry]:
    """
    Walk parent pointers from a page up to its root.

    Args:
        page_id: Page to start from
        page_map: id -> Page lookup for the whole job

    Returns:
        (id, title) entries ordered from the root down to the page itself.
        The walk stops at a parent missing from ``page_map`` and at the first
        repeated id.
    """
    chain: List[AncestorEntry] = []
    seen = set()
    current_id = page_id

    while current_id:
        if current_id in seen:
            logger.warning(f"Parent cycle detected at page {current_id} while resolving {page_id}")
            break
        page = page_map.get(current_id)
        if page is None:
            break
        seen.add(current_id)
        chain.append(AncestorEntry(page.id, page.title))
        current_id = page.parent_id

    chain.reverse()
    return chain


def folder_name(entry: AncestorEntry) -> str:
    """
    Directory name for one chain entry: ``{id}_{sanitized title}``.

    Titles in multi-byte scripts are cut on a character boundary so the
    UTF-8 encoded name stays within ``MAX_FOLDER_NAME_BYTES``.
    """
    name = f"{entry.id}_{sanitize_filename(entry.title)}"
    encoded = name.encode('utf-8')
    if len(encoded) <= MAX_FOLDER_NAME_BYTES:
        return name
    return encoded[:MAX_FOLDER_NAME_BYTES].decode('utf-8', errors='ignore').rstrip('_')


def build_page_output_path(
    page: Page,
    output_root: Union[str, Path],
    page_map: Dict[str, Page],
    create: bool = True
) -> Path:
    """
    Build the nested directory for a page under ``output_root/pages``.

    Every ancestor contributes one ``{id}_{title}`` directory, so the output
    tree mirrors the page hierarchy.

    Args:
        page: Page to place
        output_root: Export root directory
        page_map: id -> Page lookup for the whole job
        create: Create the directory on disk

    Returns:
        Path of the page directory
    """
    page_dir = Path(output_root) / PAGES_DIRECTORY

    chain = get_ancestor_chain(page.id, page_map)
    if not chain:
        # Page not in the map; place it on its own.
        chain = [AncestorEntry(page.id, page.title)]

    for entry in chain:
        page_dir = page_dir / folder_name(entry)

    if create:
        ensure_dir(page_dir)
    return page_dir


__all__ = [
    'MAX_FOLDER_NAME_BYTES',
    'PAGES_DIRECTORY',
    'build_page_map',
    'build_page_output_path',
    'folder_name',
    'get_ancestor_chain',
]
