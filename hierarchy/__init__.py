"""Page hierarchy reconstruction for Confluence space backups."""

from .ancestry import (
    build_page_map,
    build_page_output_path,
    get_ancestor_chain,
)
from .tree_builder import (
    ORPHAN_POLICY_PROMOTE_TO_ROOT,
    build_forest,
    compute_stats,
    count_all,
    to_client_tree,
)

__all__ = [
    'ORPHAN_POLICY_PROMOTE_TO_ROOT',
    'build_forest',
    'build_page_map',
    'build_page_output_path',
    'compute_stats',
    'count_all',
    'get_ancestor_chain',
    'to_client_tree',
]
