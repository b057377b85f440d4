"""Tests for the command-line entry point."""

import json

import pytest

import backup


@pytest.fixture
def pages_file(tmp_path):
    records = [
        {'id': '1', 'title': 'Home', 'spaceId': 'S', 'parentType': 'space', 'status': 'current',
         'body': {'storage': {'value': '<p>Home page</p>'}}},
        {'id': '2', 'title': 'Child', 'spaceId': 'S', 'parentId': '1', 'parentType': 'page',
         'status': 'current', 'body': {'storage': {'value': '<p>Child page</p>'}}},
    ]
    path = tmp_path / 'pages.json'
    path.write_text(json.dumps({'results': records}), encoding='utf-8')
    return path


@pytest.fixture(autouse=True)
def run_in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


class TestMain:
    def test_export(self, tmp_path, pages_file, capsys):
        out = tmp_path / 'backup'
        report = tmp_path / 'report.json'

        code = backup.main([
            '--pages-file', str(pages_file), '--output-dir', str(out),
            '--format', 'both', '--space-name', 'Docs', '--no-progress',
            '--report-path', str(report),
        ])

        assert code == 0
        assert (out / 'pages' / '1_Home' / 'page.html').is_file()
        assert (out / 'pages' / '1_Home' / '2_Child' / 'page.md').is_file()
        assert (out / '_meta' / 'pages.json').is_file()
        assert 'BACKUP REPORT' in capsys.readouterr().out
        assert json.loads(report.read_text(encoding='utf-8'))['markdown_count'] == 2

    def test_dry_run_writes_nothing(self, tmp_path, pages_file, capsys):
        out = tmp_path / 'backup'

        code = backup.main(['--pages-file', str(pages_file), '--output-dir', str(out), '--dry-run'])

        assert code == 0
        assert not out.exists()
        printed = capsys.readouterr().out
        assert 'Total pages: 2' in printed
        assert '- Home (1)' in printed
        assert '  - Child (2)' in printed

    def test_format_conflict(self, pages_file):
        assert backup.main(['--pages-file', str(pages_file), '--format', 'all', '--pdf']) == 2

    def test_missing_config(self, pages_file):
        assert backup.main(['--pages-file', str(pages_file), '--config', 'missing.yaml']) == 2

    def test_invalid_config_value(self, tmp_path, pages_file):
        config = tmp_path / 'config.yaml'
        config.write_text("pdf:\n  page_format: B5\n", encoding='utf-8')
        assert backup.main(['--pages-file', str(pages_file), '--config', str(config)]) == 2

    def test_unreadable_pages_file(self, tmp_path):
        bad = tmp_path / 'bad.json'
        bad.write_text('{"items": []}', encoding='utf-8')
        assert backup.main(['--pages-file', str(bad), '--html', '--no-progress']) == 1

    def test_pages_file_is_required(self):
        with pytest.raises(SystemExit) as exc:
            backup.main([])
        assert exc.value.code == 2

    def test_collation_follows_environment_locale(self, tmp_path, pages_file, monkeypatch):
        calls = []
        monkeypatch.setattr(backup.locale, 'setlocale', lambda category, name: calls.append((category, name)))

        backup.main(['--pages-file', str(pages_file), '--output-dir', str(tmp_path / 'out'), '--dry-run'])

        assert (backup.locale.LC_COLLATE, '') in calls

    def test_unsupported_locale_is_not_fatal(self, tmp_path, pages_file, monkeypatch):
        def broken_setlocale(category, name):
            raise backup.locale.Error('unsupported locale setting')
        monkeypatch.setattr(backup.locale, 'setlocale', broken_setlocale)

        code = backup.main(['--pages-file', str(pages_file), '--output-dir', str(tmp_path / 'out'), '--dry-run'])

        assert code == 0


class TestResolveFormats:
    def test_config_formats_are_used_by_default(self):
        args = backup.create_argument_parser().parse_args(['--pages-file', 'p.json'])
        formats = backup.resolve_formats(args, {'export': {'formats': ['markdown']}})
        assert formats.selected() == ['markdown']

    def test_individual_flags(self):
        args = backup.create_argument_parser().parse_args(['--pages-file', 'p.json', '--html', '--pdf'])
        assert backup.resolve_formats(args, {}).selected() == ['html', 'pdf']

    def test_legacy_config_string(self):
        args = backup.create_argument_parser().parse_args(['--pages-file', 'p.json'])
        assert backup.resolve_formats(args, {'export': {'formats': 'all'}}).selected() == ['html', 'markdown', 'pdf']
