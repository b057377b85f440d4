"""Headless Chromium PDF rendering through Playwright."""

import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from playwright.sync_api import sync_playwright

DEFAULT_PDF_OPTIONS = {
    'page_format': 'A4',
    'margin': '1cm',
    'timeout_ms': 30000,
    'print_background': True,
}

BROWSER_ARGS = [
    '--disable-dev-shm-usage',  # Use /tmp instead of /dev/shm
    '--disable-gpu',
    '--no-sandbox',
]


class PdfRenderSession:
    """
    A browser session scoped to one export job.

    The browser is launched once and reused; every render opens and closes
    its own tab. Use as a context manager, or call ``start()`` and
    ``close()`` explicitly.
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None, logger: Optional[logging.Logger] = None):
        self.options = {**DEFAULT_PDF_OPTIONS, **(options or {})}
        self.logger = logger or logging.getLogger('confluence_space_backup.exporters.pdf_renderer')
        self._playwright = None
        self._browser = None

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    def start(self) -> 'PdfRenderSession':
        """Launch the headless browser."""
        if self._browser is not None:
            return self
        self.logger.info("Launching headless Chromium for PDF rendering")
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=True, args=BROWSER_ARGS)
        except Exception:
            self._playwright.stop()
            self._playwright = None
            raise
        return self

    def render(self, document_html: str, output_path: Union[str, Path]) -> Path:
        """
        Render an HTML document to a PDF file.

        The document is written to a temporary directory and loaded from
        there, so ``file://`` image references resolve. The tab is closed
        whether or not rendering succeeds.

        Args:
            document_html: Complete print-variant HTML document
            output_path: Destination PDF path

        Returns:
            Path of the written PDF
        """
        if self._browser is None:
            raise RuntimeError("PDF render session is not started")

        output_path = Path(output_path)
        margin = self.options['margin']

        with tempfile.TemporaryDirectory(prefix='space-backup-pdf-') as temp_dir:
            html_file = Path(temp_dir) / 'page.html'
            html_file.write_text(document_html, encoding='utf-8')

            page = self._browser.new_page()
            try:
                page.goto(
                    html_file.as_uri(),
                    wait_until='networkidle',
                    timeout=self.options['timeout_ms'],
                )
                page.pdf(
                    path=str(output_path),
                    format=self.options['page_format'],
                    margin={'top': margin, 'right': margin, 'bottom': margin, 'left': margin},
                    print_background=self.options['print_background'],
                )
            finally:
                page.close()

        self.logger.debug(f"Wrote PDF {output_path}")
        return output_path

    def close(self) -> None:
        """Close the browser and stop Playwright. Safe to call more than once."""
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        try:
            if browser is not None:
                browser.close()
        finally:
            if playwright is not None:
                playwright.stop()
                self.logger.debug("PDF render session closed")

    def __enter__(self) -> 'PdfRenderSession':
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_render_session(options: Optional[Dict[str, Any]] = None,
                        logger: Optional[logging.Logger] = None) -> PdfRenderSession:
    """Default session factory for the export orchestrator."""
    return PdfRenderSession(options, logger).start()


__all__ = ['DEFAULT_PDF_OPTIONS', 'PdfRenderSession', 'open_render_session']
