"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict

import yaml

from models import FORMAT_ALIASES, OutputFormat

DEFAULT_CONFIG: Dict[str, Any] = {
    'export': {
        'output_directory': './confluence-backup',
        'formats': ['html', 'markdown'],
        'space_name': '',
        'progress_bars': True,
        'attachments': {
            'source_directory': None,
            'max_file_size': 52428800,  # 50MB, 0 = unlimited
            'skip_file_types': [],
        },
    },
    'pdf': {
        'page_format': 'A4',
        'margin': '1cm',
        'timeout_ms': 30000,
        'print_background': True,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}

PAGE_FORMATS = ['Letter', 'Legal', 'Tabloid', 'Ledger', 'A0', 'A1', 'A2', 'A3', 'A4', 'A5', 'A6']
CSS_LENGTH_PATTERN = re.compile(r'^\d+(\.\d+)?(px|in|cm|mm)$')


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def defaults(cls) -> Dict[str, Any]:
        """Return a fresh copy of the default configuration."""
        return copy.deepcopy(DEFAULT_CONFIG)

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Values missing from the file are filled in from the defaults.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)

        return cls._deep_merge(cls.defaults(), config_data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        cls._validate_required_field(config, 'export.output_directory')
        output_dir = get_nested(config, 'export.output_directory')
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"export.output_directory '{output_dir}' is not a directory")

        formats = get_nested(config, 'export.formats', [])
        if isinstance(formats, str):
            if formats.strip().lower() not in FORMAT_ALIASES:
                raise ValueError(
                    f"export.formats must be one of: {sorted(FORMAT_ALIASES)}"
                )
        elif isinstance(formats, list):
            valid = [f.value for f in OutputFormat]
            for fmt in formats:
                if str(fmt).strip().lower() not in valid:
                    raise ValueError(f"export.formats entries must be one of: {valid}")
        else:
            raise ValueError("export.formats must be a list or a format name")

        progress_bars = get_nested(config, 'export.progress_bars', True)
        if not isinstance(progress_bars, bool):
            raise ValueError("export.progress_bars must be a boolean")

        max_file_size = get_nested(config, 'export.attachments.max_file_size', 0)
        if not isinstance(max_file_size, int) or isinstance(max_file_size, bool) or max_file_size < 0:
            raise ValueError("export.attachments.max_file_size must be a non-negative integer")

        skip_file_types = get_nested(config, 'export.attachments.skip_file_types', [])
        if not isinstance(skip_file_types, list):
            raise ValueError("export.attachments.skip_file_types must be a list")

        source_dir = get_nested(config, 'export.attachments.source_directory')
        if source_dir and not os.path.isdir(source_dir):
            raise ValueError(
                f"export.attachments.source_directory '{source_dir}' is not a valid directory"
            )

        page_format = get_nested(config, 'pdf.page_format', 'A4')
        if page_format not in PAGE_FORMATS:
            raise ValueError(f"pdf.page_format must be one of: {PAGE_FORMATS}")

        margin = get_nested(config, 'pdf.margin', '1cm')
        if not isinstance(margin, str) or not CSS_LENGTH_PATTERN.match(margin):
            raise ValueError("pdf.margin must be a length such as '1cm', '10mm' or '0.5in'")

        timeout = get_nested(config, 'pdf.timeout_ms', 30000)
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            raise ValueError("pdf.timeout_ms must be a positive number")

        print_background = get_nested(config, 'pdf.print_background', True)
        if not isinstance(print_background, bool):
            raise ValueError("pdf.print_background must be a boolean")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('export', 'pdf', 'logging'):
            if section not in merged or merged[section] is None:
                merged[section] = {}
        if not merged['export'].get('attachments'):
            merged['export']['attachments'] = {}

        if getattr(args, 'output_dir', None):
            merged['export']['output_directory'] = args.output_dir

        if getattr(args, 'formats', None):
            merged['export']['formats'] = list(args.formats)

        if getattr(args, 'space_name', None):
            merged['export']['space_name'] = args.space_name

        if getattr(args, 'attachments_dir', None):
            merged['export']['attachments']['source_directory'] = args.attachments_dir

        if getattr(args, 'no_progress', False):
            merged['export']['progress_bars'] = False

        if getattr(args, 'log_file', None):
            merged['logging']['file'] = args.log_file

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose >= 2:
            merged['logging']['level'] = 'DEBUG'
        elif verbose == 1:
            merged['logging']['level'] = 'INFO'

        return merged

    @classmethod
    def _deep_merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge override into base; override wins."""
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                base[key] = cls._deep_merge(base[key], value)
            else:
                base[key] = value
        return base

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            var_name = match.group(1)
            env_value = os.getenv(var_name)
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config_section: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config_section, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        # Check for unsubstituted environment variables
        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "pdf.page_format")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'get_nested']
