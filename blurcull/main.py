"""
Main entry point for blurcull.

Usage:
    blurcull ~/Pictures/shoot
    blurcull --config config/config.yaml
    blurcull ~/Pictures/a ~/Pictures/b --threshold 120 --dry-run
"""

import argparse
import sys

import yaml

from . import __version__
from .config_loader import load_config, print_config_summary, validate_config
from .processor import BlurCullProcessor
from .sharpness import InvalidImageError
from .utils import ImageDecodeError, setup_logging, validate_folders


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='blurcull',
        description="Flag blurry JPEG photos with a center-weighted Laplacian variance score",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ~/Pictures/shoot
  %(prog)s --config config/config.yaml
  %(prog)s ~/Pictures/a ~/Pictures/b --threshold 120 --dry-run
  %(prog)s ~/Pictures/shoot --no-move
        """
    )

    parser.add_argument(
        'folders',
        nargs='*',
        help='Folders to scan (overrides paths.input_dirs from the config)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration file (default: built-in defaults)'
    )

    parser.add_argument(
        '--threshold',
        type=float,
        default=None,
        help='Sharpness threshold (default: 100)'
    )

    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Number of scoring threads (default: CPU count, at most 8)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Score images but do not move files'
    )

    parser.add_argument(
        '--move',
        dest='move',
        action='store_true',
        default=None,
        help='Move flagged images into the review folder'
    )

    parser.add_argument(
        '--no-move',
        dest='move',
        action='store_false',
        help='Only score and report, never move files'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'blurcull {__version__}'
    )

    return parser.parse_args(argv)


def apply_overrides(config: dict, args) -> dict:
    """Apply command-line overrides on top of the loaded configuration."""
    if args.folders:
        config['paths']['input_dirs'] = list(args.folders)

    if args.threshold is not None:
        config['sharpness']['threshold'] = args.threshold

    if args.workers is not None:
        config['processing']['num_workers'] = args.workers

    if args.dry_run:
        config['advanced']['dry_run'] = True

    if args.move is False:
        config['output']['move_bands'] = []
    elif args.move and not config['output']['move_bands']:
        config['output']['move_bands'] = ['blurry']

    validate_config(config)

    return config


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        config = load_config(args.config)
        config = apply_overrides(config, args)

    except FileNotFoundError as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1

    except (ValueError, yaml.YAMLError) as e:
        print(f"\nERROR: Invalid configuration: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(config)
    logger.info(f"blurcull {__version__} started")

    print_config_summary(config, logger)

    if not validate_folders(config['paths']['input_dirs'], logger):
        logger.error("Folder validation failed. Exiting.")
        return 1

    processor = BlurCullProcessor(config, logger)

    try:
        report = processor.process_all()

    except KeyboardInterrupt:
        processor.cancel()
        print("\n\nScan interrupted by user", file=sys.stderr)
        return 130

    except (ImageDecodeError, InvalidImageError, OSError) as e:
        logger.error(f"Scan stopped on error: {e}")
        return 1

    print(report.format_summary())

    if report.error_count > 0:
        logger.warning(f"{report.error_count} images could not be scored")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
