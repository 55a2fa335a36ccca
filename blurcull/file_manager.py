"""
File management module for culling images.

Handles scanning folders for JPEG files and moving flagged images into a
review folder.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional


DEFAULT_EXTENSIONS = ('.jpg', '.jpeg')
DEFAULT_REVIEW_FOLDER = 'review_blurry'


@dataclass
class ImageEntry:
    """A JPEG file found by a folder scan."""
    name: str
    path: str


@dataclass
class MoveResult:
    """Outcome of moving one file."""
    file: str
    success: bool
    error: Optional[str] = None


@dataclass
class MoveReport:
    """Outcome of a move-to-review operation."""
    review_dir: str
    results: List[MoveResult] = field(default_factory=list)

    @property
    def moved_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.success)


def has_image_extension(name: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    """Case-insensitive extension check."""
    return Path(name).suffix.lower() in {ext.lower() for ext in extensions}


def scan_jpegs(folder: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> List[ImageEntry]:
    """
    List the JPEG files directly inside a folder.

    Hidden files, empty files and directories are skipped, and symlinks
    pointing at files are included.

    Args:
        folder: Folder to scan (not recursive)
        extensions: Accepted file extensions

    Returns:
        ImageEntry list sorted by name

    Raises:
        FileNotFoundError: If the folder doesn't exist
        NotADirectoryError: If the path is not a folder
    """
    extensions = tuple(extensions)
    entries = []

    with os.scandir(folder) as it:
        for entry in it:
            if entry.name.startswith('.'):
                continue
            if not has_image_extension(entry.name, extensions):
                continue
            try:
                if not entry.is_file():
                    continue
                if os.stat(entry.path).st_size == 0:
                    continue
            except OSError:
                continue
            entries.append(ImageEntry(name=entry.name, path=os.path.join(folder, entry.name)))

    return sorted(entries, key=lambda e: e.name)


def scan_multiple_folders(folders: Iterable[str],
                          extensions: Iterable[str] = DEFAULT_EXTENSIONS,
                          logger: Optional[logging.Logger] = None) -> List[ImageEntry]:
    """
    Scan several folders and concatenate the results in folder order.

    Same-named files from different folders are all kept. Folders that
    cannot be read are logged and skipped.

    Args:
        folders: Folders to scan
        extensions: Accepted file extensions
        logger: Optional logger instance

    Returns:
        Combined ImageEntry list
    """
    logger = logger or logging.getLogger('BlurCull.FileManager')
    extensions = tuple(extensions)
    results = []

    for folder in folders:
        try:
            found = scan_jpegs(folder, extensions)
        except OSError as e:
            logger.warning(f"Skipping folder {folder}: {e}")
            continue
        logger.info(f"Found {len(found)} JPEG files in {folder}")
        results.extend(found)

    return results


class FileManager:
    """Moves flagged images into review folders."""

    def __init__(self, config: dict, logger: Optional[logging.Logger] = None):
        """
        Initialize file manager.

        Args:
            config: Configuration dictionary
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger('BlurCull.FileManager')

        self.review_folder = config['paths']['review_folder'] or DEFAULT_REVIEW_FOLDER
        self.dest_folder = config['paths']['dest_folder']
        self.image_extensions = tuple(config['processing']['image_extensions'])
        self.dry_run = config['advanced']['dry_run']

    def scan_input_folders(self) -> List[str]:
        """
        Scan all configured input folders for JPEG files.

        Returns:
            List of file paths
        """
        folders = self.config['paths']['input_dirs']
        self.logger.info(f"Scanning {len(folders)} input folder(s)")

        entries = scan_multiple_folders(folders, self.image_extensions, self.logger)

        self.logger.info(f"Found {len(entries)} images")

        return [entry.path for entry in entries]

    def get_review_dir(self, source_folder: str,
                       review_folder_name: Optional[str] = None,
                       dest_folder: Optional[str] = None) -> Path:
        """
        Resolve the folder flagged files are moved into.

        Args:
            source_folder: Folder the files came from
            review_folder_name: Subfolder name (default from config)
            dest_folder: Explicit destination, overrides the subfolder

        Returns:
            Review folder path
        """
        dest_folder = dest_folder or self.dest_folder
        if dest_folder:
            return Path(dest_folder)
        return Path(source_folder) / (review_folder_name or self.review_folder)

    def handle_duplicate_filename(self, target_path: Path) -> Path:
        """
        Handle duplicate filenames by appending a counter.

        Args:
            target_path: Proposed target path

        Returns:
            Available target path (may have counter appended)
        """
        if not target_path.exists():
            return target_path

        counter = 1
        stem = target_path.stem
        suffix = target_path.suffix
        parent = target_path.parent

        while True:
            new_path = parent / f"{stem}_{counter}{suffix}"
            if not new_path.exists():
                return new_path
            counter += 1

    def move_to_review(self, files: Iterable[str], source_folder: str,
                       review_folder_name: Optional[str] = None,
                       dest_folder: Optional[str] = None) -> MoveReport:
        """
        Move files into the review folder.

        A failure on one file is recorded and the remaining files are still
        moved.

        Args:
            files: Paths of files to move
            source_folder: Folder the files came from
            review_folder_name: Subfolder name (default from config)
            dest_folder: Explicit destination, overrides the subfolder

        Returns:
            MoveReport with per-file results
        """
        review_dir = self.get_review_dir(source_folder, review_folder_name, dest_folder)
        report = MoveReport(review_dir=str(review_dir))

        if self.dry_run:
            for src in files:
                name = Path(src).name
                self.logger.info(f"[DRY RUN] Would move to {review_dir}: {name}")
                report.results.append(MoveResult(file=name, success=True))
            return report

        review_dir.mkdir(parents=True, exist_ok=True)

        for src in files:
            src_path = Path(src)
            try:
                if not src_path.is_file():
                    raise FileNotFoundError(f"Source file not found: {src}")

                target_path = self.handle_duplicate_filename(review_dir / src_path.name)
                shutil.move(str(src_path), str(target_path))
                self.logger.debug(f"Moved: {src_path.name} → {review_dir}")
                report.results.append(MoveResult(file=src_path.name, success=True))

            except OSError as e:
                self.logger.error(f"Failed to move {src}: {e}")
                report.results.append(MoveResult(file=src_path.name, success=False, error=str(e)))

        self.logger.info(
            f"Moved {report.moved_count} file(s) to {review_dir}"
            + (f", {report.failed_count} failed" if report.failed_count else "")
        )

        return report
