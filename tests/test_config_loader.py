"""Tests for configuration loading and validation."""

import argparse
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

import yaml

from config_loader import ConfigLoader, DEFAULT_CONFIG, get_nested


def make_args(**overrides):
    values = dict(output_dir=None, formats=None, space_name=None, attachments_dir=None,
                  no_progress=False, log_file=None, verbose=0)
    values.update(overrides)
    return argparse.Namespace(**values)


class TestLoad(unittest.TestCase):
    def setUp(self):
        self.tmp = TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, text):
        path = self.dir / 'config.yaml'
        path.write_text(text, encoding='utf-8')
        return str(path)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            ConfigLoader.load(str(self.dir / 'nope.yaml'))

    def test_partial_file_is_merged_with_defaults(self):
        config = ConfigLoader.load(self.write("pdf:\n  margin: 2cm\n"))
        self.assertEqual(config['pdf']['margin'], '2cm')
        self.assertEqual(config['pdf']['page_format'], 'A4')
        self.assertEqual(config['export']['formats'], ['html', 'markdown'])

    def test_empty_file(self):
        self.assertEqual(ConfigLoader.load(self.write('')), DEFAULT_CONFIG)

    def test_non_mapping(self):
        with self.assertRaises(ValueError):
            ConfigLoader.load(self.write('- a\n- b\n'))

    def test_invalid_yaml(self):
        with self.assertRaises(yaml.YAMLError):
            ConfigLoader.load(self.write('export: [unclosed\n'))

    def test_env_substitution(self):
        with mock.patch.dict('os.environ', {'BACKUP_DIR': '/data/backup'}):
            config = ConfigLoader.load(self.write("export:\n  output_directory: ${BACKUP_DIR}/space\n"))
        self.assertEqual(config['export']['output_directory'], '/data/backup/space')

    def test_unset_env_var_fails_validation(self):
        with mock.patch.dict('os.environ', {}, clear=True):
            config = ConfigLoader.load(self.write("export:\n  output_directory: ${NOT_SET_ANYWHERE}\n"))
        with self.assertRaises(ValueError) as ctx:
            ConfigLoader.validate(config)
        self.assertIn('NOT_SET_ANYWHERE', str(ctx.exception))

    def test_defaults_are_copies(self):
        config = ConfigLoader.defaults()
        config['pdf']['margin'] = '5mm'
        self.assertEqual(DEFAULT_CONFIG['pdf']['margin'], '1cm')


class TestValidate(unittest.TestCase):
    def assert_invalid(self, path, value):
        config = ConfigLoader.defaults()
        section, _, key = path.rpartition('.')
        target = config
        for part in section.split('.'):
            target = target[part]
        target[key] = value
        with self.assertRaises(ValueError):
            ConfigLoader.validate(config)

    def test_defaults_are_valid(self):
        ConfigLoader.validate(ConfigLoader.defaults())

    def test_format_alias_string_is_valid(self):
        config = ConfigLoader.defaults()
        config['export']['formats'] = 'all'
        ConfigLoader.validate(config)

    def test_invalid_values(self):
        cases = [
            ('export.output_directory', ''),
            ('export.formats', ['html', 'docx']),
            ('export.formats', 'everything'),
            ('export.formats', 42),
            ('export.progress_bars', 'yes'),
            ('export.attachments.max_file_size', -1),
            ('export.attachments.max_file_size', True),
            ('export.attachments.skip_file_types', '.exe'),
            ('export.attachments.source_directory', '/definitely/not/here'),
            ('pdf.page_format', 'B5'),
            ('pdf.margin', '1 cm'),
            ('pdf.margin', 10),
            ('pdf.timeout_ms', 0),
            ('pdf.print_background', 'true'),
        ]
        for path, value in cases:
            with self.subTest(path=path, value=value):
                self.assert_invalid(path, value)

    def test_output_directory_is_a_file(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / 'file.txt'
            path.write_text('x', encoding='utf-8')
            self.assert_invalid('export.output_directory', str(path))


class TestMergeWithArgs(unittest.TestCase):
    def test_cli_overrides(self):
        merged = ConfigLoader.merge_with_args(
            ConfigLoader.defaults(),
            make_args(output_dir='out', formats=['pdf'], space_name='Docs',
                      attachments_dir='att', no_progress=True, log_file='run.log', verbose=2)
        )
        self.assertEqual(merged['export']['output_directory'], 'out')
        self.assertEqual(merged['export']['formats'], ['pdf'])
        self.assertEqual(merged['export']['space_name'], 'Docs')
        self.assertEqual(merged['export']['attachments']['source_directory'], 'att')
        self.assertFalse(merged['export']['progress_bars'])
        self.assertEqual(merged['logging']['file'], 'run.log')
        self.assertEqual(merged['logging']['level'], 'DEBUG')

    def test_no_args_keeps_config(self):
        config = ConfigLoader.defaults()
        merged = ConfigLoader.merge_with_args(config, make_args())
        self.assertEqual(merged, config)
        self.assertIsNot(merged, config)

    def test_missing_sections_are_created(self):
        merged = ConfigLoader.merge_with_args({}, make_args(attachments_dir='att', verbose=1))
        self.assertEqual(merged['export']['attachments']['source_directory'], 'att')
        self.assertEqual(merged['logging']['level'], 'INFO')


class TestGetNested(unittest.TestCase):
    def test_lookup(self):
        config = {'a': {'b': {'c': 1}}}
        self.assertEqual(get_nested(config, 'a.b.c'), 1)
        self.assertEqual(get_nested(config, 'a.x', 'fallback'), 'fallback')
        self.assertIsNone(get_nested(config, 'a.b.c.d'))


if __name__ == '__main__':
    unittest.main()
