"""
Tests for the command-line entry point.
"""

from pathlib import Path

import pytest
import yaml

from blurcull import __version__
from blurcull.config_loader import load_config
from blurcull.main import apply_overrides, main, parse_arguments


@pytest.fixture(autouse=True)
def work_in_tmp(tmp_path: Path, monkeypatch):
    """Reports and score files land in the working directory."""
    monkeypatch.chdir(tmp_path)


class TestArguments:
    """parse_arguments() and apply_overrides() tests."""

    def test_overrides(self):
        args = parse_arguments(['/a', '/b', '--threshold', '55', '--workers', '3', '--dry-run'])

        config = apply_overrides(load_config(), args)

        assert config['paths']['input_dirs'] == ['/a', '/b']
        assert config['sharpness']['threshold'] == 55.0
        assert config['processing']['num_workers'] == 3
        assert config['advanced']['dry_run'] is True

    def test_no_move(self):
        config = apply_overrides(load_config(), parse_arguments(['/a', '--no-move']))

        assert config['output']['move_bands'] == []

    def test_move_restores_default_band(self):
        config = load_config()
        config['output']['move_bands'] = []

        config = apply_overrides(config, parse_arguments(['/a', '--move']))

        assert config['output']['move_bands'] == ['blurry']

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            apply_overrides(load_config(), parse_arguments(['/a', '--threshold', '0']))

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            parse_arguments(['--version'])

        assert __version__ in capsys.readouterr().out


class TestMain:
    """main() exit codes."""

    def test_clean_folder_exits_zero(self, photo_folder):
        photo_folder['corrupt'].unlink()

        code = main([str(photo_folder['folder']), '--no-move'])

        assert code == 0
        assert Path('sharpness_scores.csv').exists()
        assert Path('blurcull_report.txt').exists()
        assert photo_folder['blurry'].exists()

    def test_errors_exit_one(self, photo_folder):
        code = main([str(photo_folder['folder'])])

        assert code == 1
        assert (photo_folder['folder'] / 'review_blurry' / 'blurry.jpg').exists()

    def test_missing_folder(self, tmp_path: Path):
        assert main([str(tmp_path / 'missing')]) == 1

    def test_no_folders(self):
        assert main([]) == 1

    def test_missing_config(self, tmp_path: Path):
        assert main(['--config', str(tmp_path / 'missing.yaml')]) == 1

    def test_invalid_config(self, tmp_path: Path):
        path = tmp_path / 'bad.yaml'
        path.write_text(yaml.safe_dump({'sharpness': {'threshold': -1}}), encoding='utf-8')

        assert main(['--config', str(path)]) == 1

    def test_config_file_folders(self, tmp_path: Path, photo_folder):
        photo_folder['corrupt'].unlink()
        path = tmp_path / 'config.yaml'
        path.write_text(yaml.safe_dump({
            'paths': {'input_dirs': [str(photo_folder['folder'])]},
            'logging': {'show_progress': False},
            'output': {'move_bands': [], 'report_format': 'json'},
        }), encoding='utf-8')

        assert main(['--config', str(path)]) == 0
        assert Path('blurcull_report.json').exists()

    def test_stop_on_error_returns_failure(self, tmp_path: Path, photo_folder):
        path = tmp_path / 'config.yaml'
        path.write_text(yaml.safe_dump({
            'paths': {'input_dirs': [str(photo_folder['folder'])]},
            'logging': {'show_progress': False},
            'output': {'move_bands': []},
            'advanced': {'error_handling': 'stop'},
        }), encoding='utf-8')

        assert main(['--config', str(path)]) == 1
        assert photo_folder['corrupt'].exists()
