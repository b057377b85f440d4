"""Data models for the Confluence space backup pipeline."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

logger = logging.getLogger('confluence_space_backup')


class OutputFormat(Enum):
    """Artifact formats an export job can produce."""
    HTML = "html"
    MARKDOWN = "markdown"
    PDF = "pdf"


# Legacy combined format names accepted by the CLI and config
FORMAT_ALIASES = {
    'html': ('html',),
    'markdown': ('markdown',),
    'pdf': ('pdf',),
    'both': ('html', 'markdown'),
    'all': ('html', 'markdown', 'pdf'),
}


@dataclass
class Page:
    """A Confluence page record as delivered by the upstream API."""

    id: str
    title: str
    space_id: str = ''
    parent_id: Optional[str] = None
    parent_type: str = ''
    status: str = ''
    created_at: str = ''
    body: Optional[str] = None  # storage format markup
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Page':
        """Build a page from the upstream JSON shape.

        Args:
            data: Record with ``id``, ``title``, ``spaceId``, ``parentId``,
                ``parentType``, ``status``, ``createdAt`` and
                ``body.storage.value``

        Returns:
            Page instance keeping ``data`` as its raw snapshot
        """
        body = (data.get('body') or {}).get('storage') or {}
        parent_id = data.get('parentId')
        parent_type = data.get('parentType') or ''
        return cls(
            id=str(data['id']) if data.get('id') is not None else '',
            title=data.get('title') or '',
            space_id=str(data.get('spaceId') or ''),
            parent_id=str(parent_id) if parent_id not in (None, '') else None,
            parent_type=parent_type,
            status=data.get('status') or '',
            created_at=data.get('createdAt') or '',
            body=body.get('value'),
            raw=data,
        )

    def is_root_page(self) -> bool:
        """Check if this page hangs directly off the space."""
        return self.parent_type == 'space' or self.parent_id is None

    def has_body(self) -> bool:
        return bool(self.body)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize page to the upstream JSON shape."""
        if self.raw:
            return self.raw
        data: Dict[str, Any] = {
            'id': self.id,
            'title': self.title,
            'spaceId': self.space_id,
            'parentId': self.parent_id,
            'parentType': self.parent_type,
            'status': self.status,
            'createdAt': self.created_at,
        }
        if self.body is not None:
            data['body'] = {'storage': {'value': self.body}}
        return data

    def __eq__(self, other: Any) -> bool:
        """Compare pages by ID."""
        if not isinstance(other, Page):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash page by ID."""
        return hash(self.id)


@dataclass
class TreeNode:
    """A page inside the reconstructed hierarchy."""

    id: str
    title: str
    parent_id: Optional[str] = None
    parent_type: str = ''
    status: str = ''
    created_at: str = ''
    children: List['TreeNode'] = field(default_factory=list)

    @classmethod
    def from_page(cls, page: Page) -> 'TreeNode':
        return cls(
            id=page.id,
            title=page.title or '',
            parent_id=page.parent_id,
            parent_type=page.parent_type,
            status=page.status,
            created_at=page.created_at,
        )

    def add_child(self, child: 'TreeNode') -> None:
        """Add a child node."""
        self.children.append(child)

    def get_all_descendants(self, include_self: bool = False) -> List['TreeNode']:
        """Get all descendant nodes, depth-first, pre-order."""
        descendants = []
        stack = list(reversed(self.children))
        if include_self:
            descendants.append(self)
        while stack:
            node = stack.pop()
            descendants.append(node)
            stack.extend(reversed(node.children))
        return descendants

    def to_dict(self) -> Dict[str, Any]:
        """Serialize node (and subtree) to dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'parent_id': self.parent_id,
            'parent_type': self.parent_type,
            'status': self.status,
            'created_at': self.created_at,
            'children': [child.to_dict() for child in self.children],
        }


@dataclass
class Forest:
    """Root nodes of a space hierarchy plus bookkeeping."""

    roots: List[TreeNode] = field(default_factory=list)
    total_pages: int = 0
    orphan_ids: List[str] = field(default_factory=list)


@dataclass
class TreeStats:
    """Depth and level statistics for a forest."""

    total_pages: int
    root_count: int
    max_depth: int
    pages_by_level: Dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_pages': self.total_pages,
            'root_count': self.root_count,
            'max_depth': self.max_depth,
            'pages_by_level': dict(self.pages_by_level),
        }


class AncestorEntry(NamedTuple):
    """One step of the root-to-page chain."""
    id: str
    title: str


@dataclass
class ExportFormats:
    """Requested output formats for an export job."""

    html: bool = False
    markdown: bool = False
    pdf: bool = False

    @classmethod
    def from_format_name(cls, name: str) -> 'ExportFormats':
        """Build formats from ``html``, ``markdown``, ``pdf``, ``both`` or ``all``."""
        key = (name or '').strip().lower()
        if key not in FORMAT_ALIASES:
            raise ValueError(
                f"Invalid format '{name}'. Must be one of: {sorted(FORMAT_ALIASES)}"
            )
        return cls.from_names(FORMAT_ALIASES[key])

    @classmethod
    def from_names(cls, names: List[str]) -> 'ExportFormats':
        """Build formats from a list of individual format names."""
        formats = cls()
        for name in names:
            fmt = OutputFormat(str(name).strip().lower())
            setattr(formats, fmt.value, True)
        return formats

    def any(self) -> bool:
        return self.html or self.markdown or self.pdf

    def selected(self) -> List[str]:
        return [fmt.value for fmt in OutputFormat if getattr(self, fmt.value)]


@dataclass
class ExportResult:
    """Aggregate counts for one export job."""

    pages_processed: int = 0
    html_count: int = 0
    markdown_count: int = 0
    pdf_count: int = 0
    attachments_downloaded: int = 0
    attachments_failed: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    def record_error(self, page_id: str, output_format: str, error: str) -> None:
        self.errors.append({'page_id': page_id, 'format': output_format, 'error': error})

    def to_dict(self) -> Dict[str, Any]:
        """Serialize result to dictionary."""
        return {
            'pages_processed': self.pages_processed,
            'html_count': self.html_count,
            'markdown_count': self.markdown_count,
            'pdf_count': self.pdf_count,
            'attachments_downloaded': self.attachments_downloaded,
            'attachments_failed': self.attachments_failed,
            'errors': list(self.errors),
        }


@dataclass
class PagePreview:
    """HTML and Markdown renditions of a single page body."""
    html: str
    markdown: str


__all__ = [
    'AncestorEntry',
    'ExportFormats',
    'ExportResult',
    'FORMAT_ALIASES',
    'Forest',
    'OutputFormat',
    'Page',
    'PagePreview',
    'TreeNode',
    'TreeStats',
]
