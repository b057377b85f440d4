#!/usr/bin/env python3
"""
Confluence Space Backup Tool - Main CLI Entry Point

Exports a saved snapshot of a Confluence space's pages into a local,
browsable directory tree of HTML, Markdown and PDF files that mirrors the
page hierarchy.
"""

import argparse
import json
import locale
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from config_loader import ConfigLoader, get_nested
from logger import log_config, log_section, setup_logging
from models import ExportFormats, FORMAT_ALIASES, Page
from exporters import LocalAttachmentSource, NullAttachmentSource
from hierarchy import build_forest, compute_stats, to_client_tree
from orchestrator import ExportOrchestrator, ExportReport, pages_from_records

__version__ = "1.0.0"

PREVIEW_MAX_DEPTH = 3


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Back up a Confluence space to local HTML, Markdown and PDF files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export HTML and Markdown (config default)
  python backup.py --pages-file pages.json

  # Everything, including PDFs
  python backup.py --pages-file pages.json --format all

  # Pick formats individually, with attachments from a local directory
  python backup.py --pages-file pages.json --html --pdf --attachments-dir ./attachments

  # Preview the hierarchy without writing anything
  python backup.py --pages-file pages.json --dry-run

  # Verbose logging
  python backup.py --pages-file pages.json -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--pages-file',
        type=str,
        required=True,
        help='JSON file with the page records of one space'
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration YAML file'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Export root directory (overrides export.output_directory)'
    )

    parser.add_argument(
        '--format',
        choices=sorted(FORMAT_ALIASES),
        help='Output formats: html, markdown, pdf, both (html+markdown) or all'
    )

    parser.add_argument('--html', action='store_true', help='Produce page.html files')
    parser.add_argument('--markdown', action='store_true', help='Produce page.md files')
    parser.add_argument('--pdf', action='store_true', help='Produce page.pdf files')

    parser.add_argument(
        '--space-name',
        type=str,
        help='Space name shown in document headers'
    )

    parser.add_argument(
        '--attachments-dir',
        type=str,
        help='Directory with one sub-directory of attachments per page id'
    )

    parser.add_argument(
        '--report-path',
        type=str,
        help='Write the export report as JSON to this file'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write logs to this file'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show hierarchy statistics and a tree preview without writing files'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def resolve_formats(args: argparse.Namespace, config: Dict[str, Any]) -> ExportFormats:
    """Pick formats from --format, then the individual flags, then the config."""
    if args.format and (args.html or args.markdown or args.pdf):
        raise ValueError("Use either --format or --html/--markdown/--pdf, not both")

    if args.format:
        return ExportFormats.from_format_name(args.format)

    if args.html or args.markdown or args.pdf:
        return ExportFormats(html=args.html, markdown=args.markdown, pdf=args.pdf)

    configured = get_nested(config, 'export.formats', [])
    if isinstance(configured, str):
        return ExportFormats.from_format_name(configured)
    return ExportFormats.from_names(configured)


def load_pages(pages_file: str) -> List[Page]:
    """
    Load page records from a JSON snapshot.

    Accepts a list of records or an object with a ``results`` list, the shape
    returned by the Confluence pages API.
    """
    with open(pages_file, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('results')
    if not isinstance(data, list):
        raise ValueError(f"{pages_file} must contain a list of pages or an object with 'results'")

    return pages_from_records(data)


def run_backup(config: Dict[str, Any], args: argparse.Namespace, formats: ExportFormats,
               logger: logging.Logger) -> int:
    """Run the export job and report on it."""
    try:
        pages = load_pages(args.pages_file)
        logger.info(f"Loaded {len(pages)} pages from {args.pages_file}")

        if args.dry_run:
            _print_tree_preview(pages)
            return 0

        source_dir = get_nested(config, 'export.attachments.source_directory')
        if source_dir:
            attachment_source = LocalAttachmentSource(source_dir, config, logger)
        else:
            attachment_source = NullAttachmentSource()

        output_root = Path(get_nested(config, 'export.output_directory'))
        orchestrator = ExportOrchestrator(config, attachment_source, logger=logger)
        result = orchestrator.export(
            pages,
            output_root,
            formats,
            space_name=get_nested(config, 'export.space_name', '') or ''
        )

        report = ExportReport(logger)
        print(report.format_console_report(result, output_root))

        if args.report_path:
            try:
                report.export_json_report(result, args.report_path, output_root)
            except OSError as e:
                logger.warning(f"Failed to export JSON report: {str(e)}")

        if result.errors:
            logger.warning(f"Backup completed with {len(result.errors)} errors")
            return 1

        logger.info("Backup completed successfully")
        return 0

    except KeyboardInterrupt:
        logger.error("Backup interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Backup failed: {str(e)}", exc_info=True)
        return 1


def _print_tree_preview(pages: List[Page]) -> None:
    """Print hierarchy statistics and the top of the page tree."""
    forest = build_forest(pages)
    stats = compute_stats(forest)

    print("\n" + "=" * 60)
    print("BACKUP PREVIEW (DRY RUN)")
    print("=" * 60)
    print(f"\nTotal pages: {stats.total_pages}")
    print(f"Root pages: {stats.root_count}")
    print(f"Max depth: {stats.max_depth}")
    if forest.orphan_ids:
        print(f"Orphans promoted to root: {len(forest.orphan_ids)}")

    print("\nPages by level:")
    for level in sorted(stats.pages_by_level):
        print(f"  Level {level}: {stats.pages_by_level[level]}")

    print("\nTree:")
    print("-" * 60)
    stack = [(node, 0) for node in reversed(to_client_tree(forest))]
    while stack:
        node, depth = stack.pop()
        print(f"{'  ' * depth}- {node['title']} ({node['id']})")
        if depth + 1 < PREVIEW_MAX_DEPTH:
            stack.extend((child, depth + 1) for child in reversed(node['children']))
        elif node['children']:
            print(f"{'  ' * (depth + 1)}  ... {len(node['children'])} more")

    print("\n" + "=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(verbosity=args.verbose)
        logger = logging.getLogger('confluence_space_backup')

        try:
            locale.setlocale(locale.LC_COLLATE, '')
        except locale.Error as e:
            logger.warning(f"Could not apply the environment's collation locale: {e}")

        log_section("Confluence Space Backup")
        logger.info(f"Version: {__version__}")

        if args.config:
            logger.info(f"Loading configuration from {args.config}")
            config = ConfigLoader.load(args.config)
        else:
            config = ConfigLoader.defaults()

        formats = resolve_formats(args, config)
        args.formats = formats.selected()

        # CLI takes precedence
        config = ConfigLoader.merge_with_args(config, args)
        ConfigLoader.validate(config)
        if not formats.any():
            raise ValueError("At least one output format must be selected")

        # Reconfigure logging with config file settings
        level = None if args.verbose else get_nested(config, 'logging.level')
        logger = setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=level
        )

        log_config(config)

        return run_backup(config, args, formats, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except yaml.YAMLError as e:
        print(f"ERROR: Invalid configuration file: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nBackup interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
