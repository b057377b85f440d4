"""Attachment sources that place page attachments into the export tree."""

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .filesystem import ensure_dir


class AttachmentSource(ABC):
    """
    Retrieval capability for page attachments.

    ``download`` places every attachment of a page into ``dest_dir`` and
    returns ``{'downloaded': int, 'failed': int}``. Errors that make the
    whole source unusable propagate to the caller.
    """

    @abstractmethod
    def download(self, page_id: str, dest_dir: Union[str, Path]) -> Dict[str, int]:
        raise NotImplementedError


class NullAttachmentSource(AttachmentSource):
    """Source for jobs that export page bodies only."""

    def download(self, page_id: str, dest_dir: Union[str, Path]) -> Dict[str, int]:
        return {'downloaded': 0, 'failed': 0}


class LocalAttachmentSource(AttachmentSource):
    """
    Copies attachments from a local directory laid out as ``<root>/<page_id>/*``.

    This source:
    1. Checks exclusion criteria (file size, type)
    2. Copies each remaining file into the page's attachments directory
    3. Counts per-file copy errors as failures without stopping
    """

    def __init__(
        self,
        source_root: Union[str, Path],
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the attachment source.

        Args:
            source_root: Directory holding one sub-directory per page id
            config: Configuration dictionary
            logger: Logger instance
        """
        self.source_root = Path(source_root)
        self.logger = logger or logging.getLogger('confluence_space_backup.exporters.attachment_manager')

        if not self.source_root.is_dir():
            raise FileNotFoundError(f"Attachment directory not found: {self.source_root}")

        attachment_config = (config or {}).get('export', {}).get('attachments', {}) or {}
        self.max_file_size = attachment_config.get('max_file_size', 52428800)  # 50MB default
        self.skip_file_types: List[str] = attachment_config.get('skip_file_types', []) or []

        self.stats = {
            'downloaded': 0,
            'skipped': 0,
            'failed': 0,
            'total_size_bytes': 0
        }

    def download(self, page_id: str, dest_dir: Union[str, Path]) -> Dict[str, int]:
        """Copy the attachments of one page into dest_dir."""
        page_stats = {'downloaded': 0, 'failed': 0}
        page_source = self.source_root / str(page_id)
        if not page_source.is_dir():
            return page_stats

        dest_dir = ensure_dir(dest_dir)
        for source_file in sorted(page_source.iterdir()):
            if not source_file.is_file():
                continue

            should_skip, skip_reason = self._should_skip_attachment(source_file)
            if should_skip:
                self.logger.info(f"Skipping attachment '{source_file.name}': {skip_reason}")
                self.stats['skipped'] += 1
                continue

            try:
                shutil.copy2(source_file, dest_dir / source_file.name)
                self.stats['downloaded'] += 1
                self.stats['total_size_bytes'] += source_file.stat().st_size
                page_stats['downloaded'] += 1
            except OSError as e:
                self.logger.warning(f"Failed to copy attachment '{source_file.name}' for page {page_id}: {e}")
                self.stats['failed'] += 1
                page_stats['failed'] += 1

        self.logger.debug(
            f"Page {page_id}: {page_stats['downloaded']} attachments copied, "
            f"{page_stats['failed']} failed"
        )
        return page_stats

    def _should_skip_attachment(self, path: Path) -> Tuple[bool, str]:
        """
        Check if attachment should be skipped based on exclusion criteria.

        Args:
            path: Attachment file

        Returns:
            Tuple of (should_skip, reason)
        """
        # Check file size (0 means unlimited)
        file_size = path.stat().st_size
        if self.max_file_size > 0 and file_size > self.max_file_size:
            return (
                True,
                f"File size ({file_size} bytes) exceeds limit ({self.max_file_size} bytes)"
            )

        # Check file type (handle multi-part extensions like .tar.gz)
        suffixes = path.suffixes
        extensions_to_check = []
        if suffixes:
            extensions_to_check.append(suffixes[-1].lower())
            if len(suffixes) > 1:
                extensions_to_check.append(''.join(suffixes).lower())

        skip_types_lower = [ext.lower() for ext in self.skip_file_types]
        for ext in extensions_to_check:
            if ext in skip_types_lower:
                return True, f"File type '{ext}' is in skip list"

        return False, ""


__all__ = ['AttachmentSource', 'LocalAttachmentSource', 'NullAttachmentSource']
