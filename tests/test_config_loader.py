"""
Unit tests for configuration loading and validation.
"""

import logging
from pathlib import Path

import pytest
import yaml

from blurcull.config_loader import (
    apply_defaults,
    load_config,
    print_config_summary,
    validate_config,
)


def write_yaml(path: Path, data) -> str:
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return str(path)


class TestLoadConfig:
    """load_config() tests."""

    def test_defaults_without_file(self):
        config = load_config()

        assert config['sharpness']['threshold'] == 100.0
        assert config['paths']['review_folder'] == 'review_blurry'
        assert config['output']['move_bands'] == ['blurry']
        assert config['processing']['image_extensions'] == ['.jpg', '.jpeg']

    def test_user_values_take_precedence(self, tmp_path: Path):
        path = write_yaml(tmp_path / 'config.yaml', {
            'paths': {'input_dirs': ['/photos']},
            'sharpness': {'threshold': 42.5},
        })

        config = load_config(path)

        assert config['paths']['input_dirs'] == ['/photos']
        assert config['sharpness']['threshold'] == 42.5
        assert config['advanced']['error_handling'] == 'skip'

    def test_single_folder_string_becomes_list(self, tmp_path: Path):
        path = write_yaml(tmp_path / 'config.yaml', {'paths': {'input_dirs': '/photos'}})

        assert load_config(path)['paths']['input_dirs'] == ['/photos']

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'missing.yaml'))

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / 'empty.yaml'
        path.write_text('', encoding='utf-8')

        with pytest.raises(ValueError):
            load_config(str(path))

    def test_non_mapping_file(self, tmp_path: Path):
        path = write_yaml(tmp_path / 'list.yaml', [1, 2, 3])

        with pytest.raises(ValueError):
            load_config(path)

    def test_defaults_are_not_shared(self):
        first = load_config()
        first['output']['move_bands'].append('borderline')

        assert load_config()['output']['move_bands'] == ['blurry']


class TestValidateConfig:
    """validate_config() tests."""

    @pytest.mark.parametrize("section,key,value", [
        ('sharpness', 'threshold', 0),
        ('sharpness', 'threshold', -5),
        ('sharpness', 'threshold', 'sharp'),
        ('processing', 'num_workers', -1),
        ('processing', 'max_side', 2),
        ('output', 'move_bands', ['fuzzy']),
        ('output', 'report_format', 'xml'),
        ('logging', 'level', 'LOUD'),
        ('advanced', 'error_handling', 'retry'),
    ])
    def test_rejects_invalid_values(self, section, key, value):
        config = apply_defaults({section: {key: value}})

        with pytest.raises(ValueError):
            validate_config(config)

    def test_accepts_borderline_band(self):
        config = apply_defaults({'output': {'move_bands': ['blurry', 'borderline']}})

        validate_config(config)

    def test_null_workers_means_auto(self):
        config = apply_defaults({'processing': {'num_workers': None}})

        validate_config(config)

        assert config['processing']['num_workers'] == 0


class TestPrintConfigSummary:
    """print_config_summary() tests."""

    def test_logs_key_settings(self, caplog):
        config = apply_defaults({
            'paths': {'input_dirs': ['/photos']},
            'advanced': {'dry_run': True},
        })
        logger = logging.getLogger('BlurCull.Test')

        with caplog.at_level(logging.INFO, logger='BlurCull.Test'):
            print_config_summary(config, logger)

        assert "Input Folder: /photos" in caplog.text
        assert "Sharpness Threshold: 100.0" in caplog.text
        assert "DRY RUN MODE" in caplog.text
