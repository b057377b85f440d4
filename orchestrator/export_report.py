"""
Export report formatting.

Renders an ExportResult for the console and as a JSON file.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from models import ExportResult

MAX_CONSOLE_ERRORS = 20


class ExportReport:
    """Formats export results for people and for machines."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('confluence_space_backup.orchestrator.export_report')

    def build_report(self, result: ExportResult, output_root: Union[str, Path]) -> Dict[str, Any]:
        """Build a serializable report dictionary."""
        report = result.to_dict()
        report['output_directory'] = str(output_root)
        report['error_count'] = len(result.errors)
        report['timestamp'] = datetime.now().isoformat()
        return report

    def format_console_report(self, result: ExportResult, output_root: Union[str, Path]) -> str:
        """
        Format result for console display.

        Args:
            result: Result of an export job
            output_root: Export root directory

        Returns:
            Formatted console string
        """
        sections = []

        sections.append("=" * 60)
        sections.append("BACKUP REPORT")
        sections.append("=" * 60)
        sections.append("")

        sections.append("Summary:")
        sections.append(f"  Output:      {output_root}")
        sections.append(f"  Pages:       {result.pages_processed}")
        sections.append(f"  HTML:        {result.html_count}")
        sections.append(f"  Markdown:    {result.markdown_count}")
        sections.append(f"  PDF:         {result.pdf_count}")
        sections.append(
            f"  Attachments: {result.attachments_downloaded} downloaded, "
            f"{result.attachments_failed} failed"
        )
        sections.append("")

        if result.errors:
            sections.append(f"Errors ({len(result.errors)}):")
            sections.append("-" * 60)
            for error in result.errors[:MAX_CONSOLE_ERRORS]:
                sections.append(f"  [{error['format']}] page {error['page_id']}: {error['error']}")
            if len(result.errors) > MAX_CONSOLE_ERRORS:
                sections.append(f"  ... and {len(result.errors) - MAX_CONSOLE_ERRORS} more")
        else:
            sections.append("No errors.")

        sections.append("=" * 60)
        return "\n".join(sections)

    def export_json_report(self, result: ExportResult, filepath: Union[str, Path],
                           output_root: Union[str, Path] = '') -> None:
        """
        Export result to a JSON file.

        Args:
            result: Result of an export job
            filepath: Output file path
            output_root: Export root directory recorded in the report
        """
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.build_report(result, output_root), f, indent=2, ensure_ascii=False, default=str)

        self.logger.info(f"JSON report exported to {path}")


__all__ = ['ExportReport']
