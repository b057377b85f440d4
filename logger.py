"""Logging setup and progress reporting for backup jobs."""

import logging
import logging.handlers
import time
from typing import Any, Dict, Optional

import colorlog
from tqdm import tqdm

LOGGER_NAME = 'confluence_space_backup'

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_FILE_BACKUPS = 5

_LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def _resolve_level(verbosity: int, level: Optional[str]) -> int:
    """An explicit level name wins; otherwise -v gives INFO and -vv DEBUG."""
    if level:
        level_upper = level.upper()
        if level_upper not in LOG_LEVELS:
            raise ValueError(f"Invalid log level '{level}'. Must be one of: {list(LOG_LEVELS)}")
        return getattr(logging, level_upper)
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    level: Optional[str] = None
) -> logging.Logger:
    """
    Configure the ``confluence_space_backup`` logger.

    Calling it again replaces the handlers, so the CLI can set up console
    logging first and reconfigure once the config file is read.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
        log_file: Optional path of a rotating log file
        log_format: Optional format string
        date_format: Optional date format string
        level: Optional explicit level name, overrides verbosity

    Returns:
        The project logger

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    log_level = _resolve_level(verbosity, level)
    log_format = log_format or DEFAULT_LOG_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors=_LOG_COLORS
    ))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding='utf-8'
            )
        except OSError as e:
            logger.warning(f"Failed to set up file logging: {str(e)}")
        else:
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)
            logger.info(f"Logging to file: {log_file}")

    logger.debug(f"Log level: {logging.getLevelName(log_level)}")
    return logger


class ProgressTracker:
    """
    Counts per-item outcomes of a job.

    Progress is shown either as a tqdm bar (``show_bar=True``) or, when bars
    are disabled, as a log line every ``LOG_EVERY`` items and on each
    failure. A summary is logged on exit in both modes.
    """

    LOG_EVERY = 10

    def __init__(self, total_items: int, item_type: str = "items",
                 logger: Optional[logging.Logger] = None, show_bar: bool = False):
        self.total_items = total_items
        self.item_type = item_type
        self.show_bar = show_bar
        self.processed_items = 0
        self.successful_items = 0
        self.failed_items = 0
        self.start_time: Optional[float] = None
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self._bar = None

    def __enter__(self) -> 'ProgressTracker':
        self.start_time = time.time()
        self.logger.info(f"Starting processing of {self.total_items} {self.item_type}")
        if self.show_bar:
            self._bar = tqdm(total=self.total_items, desc=f"Exporting {self.item_type}", unit='item')
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._bar is not None:
            self._bar.close()
            self._bar = None
        if self.start_time is None:
            return

        if self.failed_items and self.failed_items == self.total_items:
            log_method = self.logger.error
        elif self.failed_items:
            log_method = self.logger.warning
        else:
            log_method = self.logger.info

        stats = self.get_stats()
        log_method(
            f"{self.item_type.capitalize()}: {self.successful_items}/{self.total_items} succeeded, "
            f"{self.failed_items} failed ({stats['success_rate']:.1f}%) in {stats['elapsed_time_formatted']}"
        )

    def increment(self, success: bool = True) -> None:
        """Record one finished item."""
        self.processed_items += 1
        if success:
            self.successful_items += 1
        else:
            self.failed_items += 1

        if self._bar is not None:
            self._bar.update(1)
            if not success:
                self._bar.set_postfix(failed=self.failed_items)
            return

        if self.processed_items % self.LOG_EVERY == 0 or not success:
            remaining = self.total_items - self.processed_items
            status = "Success" if success else "Failed"
            self.logger.info(
                f"Processed {self.processed_items}/{self.total_items} {self.item_type} "
                f"({remaining} remaining) - Last: {status}"
            )

    def get_stats(self) -> Dict[str, Any]:
        """Current counts, success rate and elapsed time."""
        elapsed = 0.0 if self.start_time is None else time.time() - self.start_time
        return {
            'total': self.total_items,
            'processed': self.processed_items,
            'successful': self.successful_items,
            'failed': self.failed_items,
            'success_rate': (self.successful_items / self.total_items * 100) if self.total_items else 0,
            'elapsed_time': elapsed,
            'elapsed_time_formatted': self._format_elapsed(elapsed)
        }

    @staticmethod
    def _format_elapsed(seconds: float) -> str:
        if seconds < 60:
            return f"{seconds:.1f}s"
        minutes, seconds = divmod(int(seconds), 60)
        if minutes < 60:
            return f"{minutes}m {seconds}s"
        hours, minutes = divmod(minutes, 60)
        return f"{hours}h {minutes}m {seconds}s"


def log_section(title: str) -> None:
    """Log a banner line around a section title."""
    logger = logging.getLogger(LOGGER_NAME)
    separator = "=" * 60
    logger.info(separator)
    logger.info(f"  {title.upper()}")
    logger.info(separator)


def log_config(config: Dict[str, Any]) -> None:
    """Log the effective export, PDF and logging settings."""
    logger = logging.getLogger(LOGGER_NAME)
    log_section("Configuration")

    export_settings = config.get('export') or {}
    attachments = export_settings.get('attachments') or {}
    logger.info(f"Output Directory: {export_settings.get('output_directory')}")
    logger.info(f"Formats: {export_settings.get('formats', [])}")
    logger.info(f"Space Name: {export_settings.get('space_name') or 'Not Set'}")
    logger.info(f"Progress Bars: {export_settings.get('progress_bars', True)}")
    logger.info(f"Attachment Source: {attachments.get('source_directory') or 'None'}")
    logger.info(f"Max Attachment Size: {attachments.get('max_file_size', 0)}")
    logger.info(f"Skipped File Types: {attachments.get('skip_file_types', [])}")

    pdf = config.get('pdf') or {}
    logger.info(
        f"PDF: {pdf.get('page_format', 'A4')}, margin {pdf.get('margin', '1cm')}, "
        f"timeout {pdf.get('timeout_ms', 30000)}ms, background {pdf.get('print_background', True)}"
    )

    logging_settings = config.get('logging') or {}
    logger.info(f"Log Level: {logging_settings.get('level', 'INFO')}")
    logger.info(f"Log File: {logging_settings.get('file') or 'None'}")


__all__ = [
    'LOGGER_NAME',
    'ProgressTracker',
    'log_config',
    'log_section',
    'setup_logging',
]
