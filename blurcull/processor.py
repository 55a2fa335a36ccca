"""
Batch processing orchestrator for blurcull.

Coordinates folder scanning, decoding, sharpness scoring across a worker
pool, reporting and moving flagged files into review folders.
"""

import csv
import json
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from multiprocessing import cpu_count
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from .file_manager import FileManager, MoveReport
from .sharpness import Band, InvalidImageError, ScoreResult, SharpnessAnalyzer
from .utils import ImageDecodeError, ProgressTracker, decode_jpeg, estimate_scan_time, format_time


STATUS_ERROR = 'error'
STATUS_CANCELLED = 'cancelled'


@dataclass
class ProcessingResult:
    """Results from processing a single image."""
    image_path: str
    status: str  # band value, 'error' or 'cancelled'
    score: Optional[ScoreResult]
    error_message: Optional[str]
    processing_time: float


@dataclass
class ProcessingReport:
    """Summary report from batch processing."""
    total_images: int
    sharp_count: int
    borderline_count: int
    blurry_count: int
    error_count: int
    cancelled_count: int
    total_time: float
    average_time_per_image: float
    results: List[ProcessingResult]
    moves: List[MoveReport] = field(default_factory=list)

    def format_summary(self) -> str:
        """Format summary as human-readable string."""
        moved = sum(m.moved_count for m in self.moves)
        lines = [
            "",
            "=" * 70,
            "SCAN SUMMARY",
            "=" * 70,
            f"Total Images: {self.total_images}",
            f"",
            f"Sharp:          {self.sharp_count:5d} ({self._percent(self.sharp_count)}%)",
            f"Borderline:     {self.borderline_count:5d} ({self._percent(self.borderline_count)}%)",
            f"Blurry:         {self.blurry_count:5d} ({self._percent(self.blurry_count)}%)",
            f"Errors:         {self.error_count:5d} ({self._percent(self.error_count)}%)",
        ]
        if self.cancelled_count:
            lines.append(
                f"Cancelled:      {self.cancelled_count:5d} ({self._percent(self.cancelled_count)}%)"
            )
        if self.moves:
            lines.append(f"Moved to review: {moved}")
        lines.extend([
            f"",
            f"Total Time: {format_time(self.total_time)}",
            f"Average: {self.average_time_per_image * 1000:.0f}ms per image",
            "=" * 70,
            ""
        ])
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, object]:
        """Counts and timings, without per-image results."""
        return {
            'total_images': self.total_images,
            'sharp_count': self.sharp_count,
            'borderline_count': self.borderline_count,
            'blurry_count': self.blurry_count,
            'error_count': self.error_count,
            'cancelled_count': self.cancelled_count,
            'moved_count': sum(m.moved_count for m in self.moves),
            'total_time': self.total_time,
            'average_time_per_image': self.average_time_per_image
        }

    def _percent(self, count: int) -> str:
        """Calculate percentage with formatting."""
        if self.total_images == 0:
            return "0.0"
        return f"{(count / self.total_images) * 100:.1f}"


class BlurCullProcessor:
    """Main processor coordinating all components."""

    def __init__(self, config: dict, logger: Optional[logging.Logger] = None):
        """
        Initialize blur culling processor.

        Args:
            config: Configuration dictionary
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger('BlurCull.Processor')

        self.analyzer = SharpnessAnalyzer(config, self.logger)
        self.file_manager = FileManager(config, self.logger)

        self.num_workers = config['processing']['num_workers'] or min(cpu_count(), 8)
        self.max_side = config['processing']['max_side']
        self.show_progress = config['logging']['show_progress']
        self.move_bands = set(config['output']['move_bands'] or [])

        self._cancel_event = threading.Event()

        self.logger.info(f"Processor initialized - {self.num_workers} worker(s)")

    def cancel(self) -> None:
        """Stop scoring images that have not started yet."""
        if not self._cancel_event.is_set():
            self.logger.warning("Cancelling remaining images")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def process_all(self, paths: Optional[List[str]] = None) -> ProcessingReport:
        """
        Score all images and move flagged ones into review folders.

        Args:
            paths: Images to score (default: scan the configured input folders)

        Returns:
            ProcessingReport with results
        """
        self.logger.info("Starting blur culling")
        start_time = time.time()

        if paths is None:
            paths = self.file_manager.scan_input_folders()

        if not paths:
            self.logger.warning("No images found in input folders")
            return self._generate_report([], 0.0)

        _, estimate = estimate_scan_time(
            len(paths), self.config['advanced']['avg_ms_per_file'] / self.num_workers
        )
        self.logger.info(f"Scoring {len(paths)} images (estimated {estimate})")

        all_results = self.score_paths(paths)

        total_time = time.time() - start_time
        report = self._generate_report(all_results, total_time)

        if self.config['output']['save_scores']:
            self.save_scores_csv(all_results)

        if self.move_bands:
            if self.cancelled:
                self.logger.warning("Scan was cancelled - no files moved")
            else:
                report.moves = self.move_flagged(all_results)

        if self.config['output']['generate_report']:
            self.save_report(report)

        self.logger.info(f"Scan complete - {len(paths)} images in {format_time(total_time)}")

        return report

    def score_paths(self, paths: List[str]) -> List[ProcessingResult]:
        """
        Score images across the worker pool.

        Args:
            paths: Image paths

        Returns:
            List of ProcessingResult objects in input order
        """
        results: Dict[int, ProcessingResult] = {}

        if self.show_progress:
            progress = tqdm(total=len(paths), desc="Scoring", unit="img")
        else:
            progress = ProgressTracker(len(paths), self.logger)

        try:
            with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
                futures = {executor.submit(self._work, p): i for i, p in enumerate(paths)}
                try:
                    for future in as_completed(futures):
                        results[futures[future]] = future.result()
                        progress.update(1)
                except BaseException:
                    self.cancel()
                    for future in futures:
                        future.cancel()
                    raise
        finally:
            if self.show_progress:
                progress.close()
            else:
                progress.finish()

        return [results[i] for i in range(len(paths))]

    def _work(self, image_path: str) -> ProcessingResult:
        if self._cancel_event.is_set():
            return ProcessingResult(
                image_path=image_path,
                status=STATUS_CANCELLED,
                score=None,
                error_message=None,
                processing_time=0.0
            )
        return self.process_single_image(image_path)

    def process_single_image(self, image_path: str) -> ProcessingResult:
        """
        Decode and score a single image.

        Args:
            image_path: Path to the image

        Returns:
            ProcessingResult object
        """
        start_time = time.time()

        try:
            image = decode_jpeg(image_path, self.max_side)
            result = self.analyzer.analyze(image)

            self.logger.debug(f"{Path(image_path).name}: {self.analyzer.get_result_summary(result)}")

            return ProcessingResult(
                image_path=image_path,
                status=result.band.value,
                score=result,
                error_message=None,
                processing_time=time.time() - start_time
            )

        except (ImageDecodeError, InvalidImageError, OSError) as e:
            self.logger.error(f"Error processing {image_path}: {e}")

            if self.config['advanced']['error_handling'] == 'stop':
                raise

            return ProcessingResult(
                image_path=image_path,
                status=STATUS_ERROR,
                score=None,
                error_message=str(e),
                processing_time=time.time() - start_time
            )

    def move_flagged(self, results: List[ProcessingResult]) -> List[MoveReport]:
        """
        Move images whose band is configured for review, grouped by source folder.

        Args:
            results: List of ProcessingResult objects

        Returns:
            One MoveReport per source folder
        """
        by_folder: Dict[str, List[str]] = OrderedDict()
        for result in results:
            if result.status in self.move_bands:
                folder = str(Path(result.image_path).parent)
                by_folder.setdefault(folder, []).append(result.image_path)

        if not by_folder:
            self.logger.info("No images flagged for review")
            return []

        return [
            self.file_manager.move_to_review(files, source_folder=folder)
            for folder, files in by_folder.items()
        ]

    def _generate_report(self, results: List[ProcessingResult],
                         total_time: float) -> ProcessingReport:
        """
        Generate processing report from results.

        Args:
            results: List of ProcessingResult objects
            total_time: Total processing time in seconds

        Returns:
            ProcessingReport object
        """
        def count(status):
            return sum(1 for r in results if r.status == status)

        scored = [r for r in results if r.status != STATUS_CANCELLED]
        avg_time = total_time / len(scored) if scored else 0.0

        return ProcessingReport(
            total_images=len(results),
            sharp_count=count(Band.SHARP.value),
            borderline_count=count(Band.BORDERLINE.value),
            blurry_count=count(Band.BLURRY.value),
            error_count=count(STATUS_ERROR),
            cancelled_count=count(STATUS_CANCELLED),
            total_time=total_time,
            average_time_per_image=avg_time,
            results=results
        )

    def save_scores_csv(self, results: List[ProcessingResult]) -> None:
        """
        Save per-image sharpness scores to CSV file.

        Args:
            results: List of ProcessingResult objects
        """
        csv_file = Path(self.config['output']['scores_file'])
        csv_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(csv_file, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)

                writer.writerow([
                    'Image Path',
                    'Status',
                    'Score',
                    'Full Frame Variance',
                    'Center Variance',
                    'Threshold',
                    'Processing Time (s)',
                    'Error Message'
                ])

                for result in results:
                    if result.score:
                        values = [
                            f"{result.score.score:.2f}",
                            f"{result.score.full_frame_variance:.2f}",
                            f"{result.score.center_variance:.2f}",
                        ]
                    else:
                        values = ['', '', '']

                    writer.writerow([
                        result.image_path,
                        result.status,
                        *values,
                        self.analyzer.threshold,
                        f"{result.processing_time:.3f}",
                        result.error_message or ''
                    ])

            self.logger.info(f"Scores saved to: {csv_file}")

        except OSError as e:
            self.logger.error(f"Failed to save scores CSV: {e}")

    def save_report(self, report: ProcessingReport) -> None:
        """
        Save processing report to file.

        Args:
            report: ProcessingReport object
        """
        report_format = self.config['output']['report_format']
        report_dir = Path(self.config['output']['report_dir'] or '.')

        try:
            report_dir.mkdir(parents=True, exist_ok=True)

            if report_format == 'json':
                report_file = report_dir / 'blurcull_report.json'
                with open(report_file, 'w', encoding='utf-8') as f:
                    json.dump(report.to_dict(), f, indent=2)
            else:
                report_file = report_dir / 'blurcull_report.txt'
                with open(report_file, 'w', encoding='utf-8') as f:
                    f.write(report.format_summary())

            self.logger.info(f"Report saved to: {report_file}")

        except OSError as e:
            self.logger.error(f"Failed to save report: {e}")
