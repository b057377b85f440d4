"""
Export orchestrator for backing up a Confluence space to a local directory tree.

For every page the orchestrator computes the nested output directory from the
page's ancestor chain, places its attachments, writes a metadata snapshot and
renders each requested format (HTML, Markdown, PDF). One failing format on one
page never stops the job, and neither does a page whose directory or
metadata cannot be written; failures of the attachment source do.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from models import ExportFormats, ExportResult, OutputFormat, Page
from config_loader import ConfigLoader, get_nested
from converters import MarkdownConverter, convert_body_to_html, convert_body_to_print_html
from exporters import (
    AttachmentSource,
    DocumentContext,
    NullAttachmentSource,
    VARIANT_PREVIEW,
    VARIANT_PRINT,
    build_markdown_document,
    render_document,
    write_json,
    write_text,
)
from exporters.pdf_renderer import open_render_session
from hierarchy import build_forest, build_page_map, build_page_output_path, compute_stats
from logger import ProgressTracker, log_section

META_DIRECTORY = '_meta'
ATTACHMENTS_DIRECTORY = 'attachments'
HTML_FILENAME = 'page.html'
MARKDOWN_FILENAME = 'page.md'
PDF_FILENAME = 'page.pdf'
META_FILENAME = 'meta.json'
# Error format for failures that stop every artifact of a page
PAGE_ERROR_FORMAT = 'page'


class ExportOrchestrator:
    """Drives one export job: pages in, directory tree of artifacts out."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        attachment_source: Optional[AttachmentSource] = None,
        render_session_factory: Optional[Callable[[], Any]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize export orchestrator.

        Args:
            config: Configuration dictionary (defaults when omitted)
            attachment_source: Where page attachments come from
            render_session_factory: Zero-argument callable returning a started
                PDF render session with ``render(html, path)`` and ``close()``
            logger: Optional logger instance
        """
        self.config = config or ConfigLoader.defaults()
        self.attachment_source = attachment_source or NullAttachmentSource()
        self.logger = logger or logging.getLogger('confluence_space_backup.orchestrator')
        self.render_session_factory = render_session_factory or self._default_session_factory
        self.show_progress = get_nested(self.config, 'export.progress_bars', True)

        self._session = None
        self._session_error: Optional[str] = None

    def _default_session_factory(self):
        return open_render_session(self.config.get('pdf'), self.logger)

    def export(
        self,
        pages: Iterable[Page],
        output_root: Union[str, Path],
        formats: ExportFormats,
        space_name: str = ''
    ) -> ExportResult:
        """
        Export pages into ``output_root``.

        Args:
            pages: Pages of the space, in any order
            output_root: Export root directory
            formats: Requested output formats
            space_name: Human-readable space name for document headers

        Returns:
            ExportResult with per-format counts and per-page errors

        Raises:
            ValueError: If no format is selected
        """
        if not formats.any():
            raise ValueError("At least one output format (html, markdown, pdf) must be selected")

        pages = list(pages)
        output_root = Path(output_root)
        result = ExportResult()

        log_section("Export")
        self.logger.info(
            f"Exporting {len(pages)} pages to {output_root} as {', '.join(formats.selected())}"
        )

        write_json(output_root / META_DIRECTORY / 'pages.json', [page.to_dict() for page in pages])
        self.logger.info(f"Saved {len(pages)} pages to {META_DIRECTORY}/pages.json")

        page_map = build_page_map(pages)
        forest = build_forest(pages, self.logger)
        stats = compute_stats(forest)
        self.logger.info(
            f"Hierarchy: {stats.root_count} root pages, max depth {stats.max_depth}, "
            f"{len(forest.orphan_ids)} orphans"
        )

        self._session = None
        self._session_error = None
        try:
            with ProgressTracker(len(pages), 'pages', self.logger, show_bar=self.show_progress) as progress:
                for page in pages:
                    if not page.id:
                        self.logger.warning(f"Skipping page without id: '{page.title}'")
                        progress.increment(success=False)
                        continue

                    errors_before = len(result.errors)
                    self._export_page(page, output_root, page_map, formats, space_name, result)
                    progress.increment(success=len(result.errors) == errors_before)
        finally:
            self._close_session()

        self.logger.info(
            f"Export complete: {result.pages_processed} pages, {result.html_count} HTML, "
            f"{result.markdown_count} Markdown, {result.pdf_count} PDF, "
            f"{len(result.errors)} errors"
        )
        return result

    def _export_page(
        self,
        page: Page,
        output_root: Path,
        page_map: Dict[str, Page],
        formats: ExportFormats,
        space_name: str,
        result: ExportResult
    ) -> None:
        """Write every artifact for one page."""
        try:
            page_dir = build_page_output_path(page, output_root, page_map)
        except OSError as e:
            self._record_page_error(page, result, f"Cannot create page directory: {str(e)}")
            return
        attachments_dir = page_dir / ATTACHMENTS_DIRECTORY

        attachment_stats = self.attachment_source.download(page.id, attachments_dir)
        result.attachments_downloaded += attachment_stats.get('downloaded', 0)
        result.attachments_failed += attachment_stats.get('failed', 0)

        try:
            write_json(page_dir / META_FILENAME, page.to_dict())
        except OSError as e:
            self._record_page_error(page, result, f"Cannot write {META_FILENAME}: {str(e)}")
            return

        if not page.has_body():
            self.logger.warning(f"Page '{page.title}' (ID: {page.id}) has no body - metadata only")
            result.pages_processed += 1
            return

        context = DocumentContext.for_page(page, space_name, page_map)

        if formats.html:
            if self._run_format(page, OutputFormat.HTML, result,
                                lambda: self._write_html(page, page_dir, context)):
                result.html_count += 1

        if formats.markdown:
            if self._run_format(page, OutputFormat.MARKDOWN, result,
                                lambda: self._write_markdown(page, page_dir, context)):
                result.markdown_count += 1

        if formats.pdf:
            if self._run_format(page, OutputFormat.PDF, result,
                                lambda: self._write_pdf(page, page_dir, attachments_dir, context)):
                result.pdf_count += 1

        result.pages_processed += 1

    def _run_format(self, page: Page, output_format: OutputFormat, result: ExportResult,
                    generate: Callable[[], None]) -> bool:
        """Run one format generation, recording instead of raising on failure."""
        try:
            generate()
            return True
        except Exception as e:
            self.logger.error(
                f"Failed to generate {output_format.value} for page '{page.title}' (ID: {page.id}): {str(e)}"
            )
            result.record_error(page.id, output_format.value, str(e))
            return False

    def _record_page_error(self, page: Page, result: ExportResult, message: str) -> None:
        """Record a failure that prevents any artifact for the page."""
        self.logger.error(f"Skipping page '{page.title}' (ID: {page.id}): {message}")
        result.record_error(page.id, PAGE_ERROR_FORMAT, message)

    def _write_html(self, page: Page, page_dir: Path, context: DocumentContext) -> None:
        body_html = convert_body_to_html(page.body, f'./{ATTACHMENTS_DIRECTORY}')
        write_text(page_dir / HTML_FILENAME, render_document(page, body_html, context, VARIANT_PREVIEW))

    def _write_markdown(self, page: Page, page_dir: Path, context: DocumentContext) -> None:
        converter = MarkdownConverter(logger=self.logger, config=self.config)
        body_md, translated = converter.convert_storage(page.body)
        for warning in translated.warnings:
            self.logger.debug(f"Page {page.id}: {warning}")
        write_text(page_dir / MARKDOWN_FILENAME, build_markdown_document(page, body_md, context))

    def _write_pdf(self, page: Page, page_dir: Path, attachments_dir: Path, context: DocumentContext) -> None:
        session = self._get_session()
        body_html = convert_body_to_print_html(page.body, attachments_dir)
        document = render_document(page, body_html, context, VARIANT_PRINT)
        session.render(document, page_dir / PDF_FILENAME)

    def _get_session(self):
        """Start the render session on first use; a failed launch is not retried."""
        if self._session is not None:
            return self._session
        if self._session_error is not None:
            raise RuntimeError(f"PDF render session unavailable: {self._session_error}")
        try:
            self._session = self.render_session_factory()
        except Exception as e:
            self._session_error = str(e)
            raise
        return self._session

    def _close_session(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            session.close()
        except Exception as e:
            self.logger.warning(f"Failed to close PDF render session: {str(e)}")


def pages_from_records(records: List[Dict[str, Any]]) -> List[Page]:
    """Build Page objects from upstream JSON records."""
    return [Page.from_dict(record) for record in records]


__all__ = ['ExportOrchestrator', 'pages_from_records']
