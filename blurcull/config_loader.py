"""
Configuration loader and validator for blurcull.

Handles loading YAML configuration files, applying defaults, and validating settings.
"""

import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

from .sharpness import Band


DEFAULTS: Dict[str, Dict[str, Any]] = {
    'paths': {
        'input_dirs': [],
        'review_folder': 'review_blurry',
        'dest_folder': None,
        'log_file': None
    },
    'sharpness': {
        'threshold': 100.0
    },
    'processing': {
        'num_workers': 0,
        'max_side': None,
        'image_extensions': ['.jpg', '.jpeg']
    },
    'output': {
        'move_bands': ['blurry'],
        'save_scores': True,
        'scores_file': 'sharpness_scores.csv',
        'generate_report': True,
        'report_format': 'txt',
        'report_dir': None
    },
    'logging': {
        'level': 'INFO',
        'console_level': 'INFO',
        'file_level': 'DEBUG',
        'show_progress': True,
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'date_format': '%Y-%m-%d %H:%M:%S'
    },
    'advanced': {
        'dry_run': False,
        'error_handling': 'skip',
        'avg_ms_per_file': 150
    }
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation.

    Args:
        config_path: Path to the configuration YAML file, or None for defaults

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
        ValueError: If configuration is invalid
    """
    if config_path is None:
        config = apply_defaults({})
        validate_config(config)
        return config

    if not os.path.exists(config_path):
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n"
            f"Copy config/config.example.yaml to config/config.yaml and edit it."
        )

    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError("Configuration file is empty")

    if not isinstance(config, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    config = apply_defaults(config)

    validate_config(config)

    return config


def apply_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply default values for missing configuration options.

    Args:
        config: Partial configuration dictionary

    Returns:
        Configuration dictionary with defaults applied
    """
    # Merge user config with defaults (user config takes precedence)
    for section, section_defaults in DEFAULTS.items():
        if config.get(section) is None:
            config[section] = {}
        for key, default_value in section_defaults.items():
            if key not in config[section]:
                config[section][key] = copy.deepcopy(default_value)

    return config


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration values.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ValueError: If configuration is invalid
    """
    paths = config['paths']
    if isinstance(paths['input_dirs'], str):
        paths['input_dirs'] = [paths['input_dirs']]
    if not isinstance(paths['input_dirs'], list):
        raise ValueError("paths.input_dirs must be a list of folders")

    if not paths['review_folder']:
        raise ValueError("Review folder name must not be empty")

    # Validate sharpness settings
    try:
        threshold = float(config['sharpness']['threshold'])
    except (TypeError, ValueError):
        raise ValueError("Sharpness threshold must be a number")
    if threshold <= 0:
        raise ValueError("Sharpness threshold must be positive")

    # Validate processing settings
    processing = config['processing']
    if processing['num_workers'] is None:
        processing['num_workers'] = 0
    if processing['num_workers'] < 0:
        raise ValueError("Number of workers cannot be negative")

    if processing['max_side'] is not None and processing['max_side'] < 3:
        raise ValueError("max_side must be at least 3 pixels")

    if not processing['image_extensions']:
        raise ValueError("At least one image extension must be configured")

    # Validate output settings
    output = config['output']
    valid_bands = [band.value for band in Band]
    for band in output['move_bands'] or []:
        if band not in valid_bands:
            raise ValueError(
                f"Move bands must be drawn from: {', '.join(valid_bands)}"
            )

    valid_formats = ['txt', 'json']
    if output['report_format'] not in valid_formats:
        raise ValueError(
            f"Report format must be one of: {', '.join(valid_formats)}"
        )

    # Validate logging settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    for key in ('level', 'console_level', 'file_level'):
        if str(config['logging'][key]).upper() not in valid_log_levels:
            raise ValueError(
                f"Log level must be one of: {', '.join(valid_log_levels)}"
            )

    # Validate advanced settings
    advanced = config['advanced']
    valid_error_handling = ['skip', 'stop']
    if advanced['error_handling'] not in valid_error_handling:
        raise ValueError(
            f"Error handling must be one of: {', '.join(valid_error_handling)}"
        )

    if advanced['avg_ms_per_file'] < 0:
        raise ValueError("avg_ms_per_file cannot be negative")


def print_config_summary(config: Dict[str, Any], logger: logging.Logger) -> None:
    """
    Print a summary of key configuration settings.

    Args:
        config: Configuration dictionary
        logger: Logger instance
    """
    logger.info("=" * 70)
    logger.info("Configuration Summary")
    logger.info("=" * 70)

    for folder in config['paths']['input_dirs']:
        logger.info(f"Input Folder: {folder}")
    if config['paths']['dest_folder']:
        logger.info(f"Review Folder: {config['paths']['dest_folder']}")
    else:
        logger.info(f"Review Folder Name: {config['paths']['review_folder']}")

    logger.info(f"Sharpness Threshold: {config['sharpness']['threshold']}")
    logger.info(f"Move Bands: {', '.join(config['output']['move_bands'] or []) or 'none'}")

    workers = config['processing']['num_workers'] or 'auto'
    logger.info(f"Workers: {workers}")

    if config['advanced']['dry_run']:
        logger.warning("DRY RUN MODE - Files will not be moved")

    logger.info("=" * 70)
