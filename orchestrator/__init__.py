"""
Orchestration package for export jobs.

Sequences the phases of one backup: snapshot -> hierarchy -> per-page
artifacts -> report.
"""

from .export_orchestrator import ExportOrchestrator, pages_from_records
from .export_report import ExportReport

__all__ = [
    'ExportOrchestrator',
    'ExportReport',
    'pages_from_records',
]
