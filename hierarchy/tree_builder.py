"""
Page tree builder.

Turns the flat page list returned for a space into a forest of TreeNodes by
resolving each page's parent pointer, and computes depth statistics over the
result.

Confluence page structure:
- every page references its parent through ``parentId``
- ``parentType == 'space'`` marks a page that hangs directly off the space
- ``parentType == 'page'`` marks a child of another page
"""

import locale
import logging
import unicodedata
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models import Forest, Page, TreeNode, TreeStats

logger = logging.getLogger('confluence_space_backup.hierarchy.tree_builder')

# A page whose parent is not part of the page set is placed at the root level.
ORPHAN_POLICY_PROMOTE_TO_ROOT = 'promote_to_root'


def title_sort_key(node: TreeNode) -> Tuple[str, str]:
    """
    Locale-aware sort key for sibling ordering.

    The primary key ignores case and accents, so ``apple`` sorts before
    ``Zebra`` and ``Éclair`` next to ``eclair`` even under the C locale.
    The raw title breaks ties between titles that fold to the same key.
    """
    title = node.title or ''
    folded = ''.join(
        ch for ch in unicodedata.normalize('NFKD', title) if not unicodedata.combining(ch)
    ).casefold()
    return locale.strxfrm(folded), locale.strxfrm(title)


def sort_siblings(nodes: List[TreeNode]) -> None:
    """Sort a sibling list and every list below it by title, in place."""
    stack = [nodes]
    while stack:
        siblings = stack.pop()
        siblings.sort(key=title_sort_key)
        for node in siblings:
            if node.children:
                stack.append(node.children)


def build_forest(pages: Iterable[Page], logger: Optional[logging.Logger] = None) -> Forest:
    """
    Convert a flat page list into a forest of TreeNodes.

    Algorithm:
    1. Map every page id to a fresh TreeNode
    2. Attach each node to its parent's children, or to the root list
    3. Sort roots and all children lists by title

    Args:
        pages: Pages of one space, in any order
        logger: Optional logger instance

    Returns:
        Forest with sorted roots, the input page count and the ids of pages
        promoted to root because their parent was missing

    Example:
        >>> forest = build_forest([
        ...     Page(id='1', title='Root', parent_type='space'),
        ...     Page(id='2', title='Child', parent_id='1', parent_type='page'),
        ... ])
        >>> forest.roots[0].children[0].title
        'Child'
    """
    log = logger or logging.getLogger('confluence_space_backup.hierarchy.tree_builder')
    pages = list(pages)

    node_map: Dict[str, TreeNode] = {}
    for page in pages:
        if page.id:
            node_map[page.id] = TreeNode.from_page(page)

    forest = Forest(total_pages=len(pages))

    for node_id, node in node_map.items():
        parent_id = node.parent_id

        if node.parent_type == 'space' or parent_id is None:
            forest.roots.append(node)
        elif parent_id in node_map:
            node_map[parent_id].add_child(node)
        else:
            # ORPHAN_POLICY_PROMOTE_TO_ROOT
            log.warning(
                f"Page '{node.title}' (ID: {node_id}) references missing parent "
                f"{parent_id} - placing it at the root level"
            )
            forest.orphan_ids.append(node_id)
            forest.roots.append(node)

    sort_siblings(forest.roots)

    log.debug(
        f"Built forest: {len(forest.roots)} roots from {forest.total_pages} pages "
        f"({len(forest.orphan_ids)} orphans)"
    )
    return forest


def count_all(node: TreeNode) -> int:
    """Count a node plus all of its descendants."""
    return 1 + len(node.get_all_descendants())


def compute_stats(forest: Forest) -> TreeStats:
    """
    Compute depth statistics with an iterative depth-first walk.

    Roots are level 1. ``max_depth`` is the deepest level reached, so a root
    with a single child yields 2.

    Args:
        forest: Forest produced by build_forest

    Returns:
        TreeStats with totals, root count, max depth and per-level counts
    """
    max_depth = 0
    pages_by_level: Dict[int, int] = {}

    stack = [(root, 1) for root in reversed(forest.roots)]
    while stack:
        node, level = stack.pop()
        pages_by_level[level] = pages_by_level.get(level, 0) + 1
        if level > max_depth:
            max_depth = level
        for child in reversed(node.children):
            stack.append((child, level + 1))

    return TreeStats(
        total_pages=forest.total_pages,
        root_count=len(forest.roots),
        max_depth=max_depth,
        pages_by_level=pages_by_level,
    )


def to_client_tree(forest: Forest) -> List[Dict[str, Any]]:
    """
    Strip a forest down to ``{id, title, children}`` dictionaries.

    Used by consumers that only display the hierarchy and do not need page
    status or timestamps.
    """
    def to_client_node(node: TreeNode) -> Dict[str, Any]:
        return {
            'id': node.id,
            'title': node.title,
            'children': [to_client_node(child) for child in node.children],
        }

    return [to_client_node(root) for root in forest.roots]


__all__ = [
    'ORPHAN_POLICY_PROMOTE_TO_ROOT',
    'build_forest',
    'compute_stats',
    'count_all',
    'sort_siblings',
    'title_sort_key',
    'to_client_tree',
]
