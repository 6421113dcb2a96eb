# services/indices.py
"""
Service for acoustic index calculations.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ecoaudio.core.analysis.indices import (
    IndexCalculationResult,
    batch_compute_indices,
    compute_indices_from_file,
    temporal_indices,
    temporal_spectral_indices,
    write_spectral_index_matrices,
)
from ecoaudio.core.audio import AudioRecording

from .base import BaseService, BatchProgress, ServiceResult


@dataclass
class TemporalIndicesResult:
    """Summary indices of consecutive windows of one recording."""

    windows: pd.DataFrame
    source_path: Optional[str] = None
    window_duration: float = 60.0
    total_duration: float = 0.0
    output_path: Optional[str] = None
    spectral_paths: List[str] = field(default_factory=list)

    @property
    def num_windows(self) -> int:
        return len(self.windows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": self.source_path,
            "window_duration": self.window_duration,
            "total_duration": self.total_duration,
            "num_windows": self.num_windows,
            "output_path": self.output_path,
            "windows": self.windows.to_dict(orient="records"),
        }


@dataclass
class BatchIndicesResult:
    """Summary indices of many files."""

    results: pd.DataFrame
    successful: int = 0
    failed: int = 0
    output_path: Optional[str] = None

    @property
    def total(self) -> int:
        return self.successful + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "output_path": self.output_path,
        }


class IndicesService(BaseService):
    """
    Service for acoustic index calculations.

    Wraps :mod:`ecoaudio.core.analysis.indices` with path validation and
    CSV output.
    """

    DEFAULT_WINDOW_SIZE = 512
    DEFAULT_SEGMENT_DURATION = 60.0

    def calculate(
        self, filepath: str, window_size: int = DEFAULT_WINDOW_SIZE, **index_options
    ) -> ServiceResult[IndexCalculationResult]:
        """
        Summary and spectral indices of a whole file.

        ``index_options`` (activity threshold, cover bounds, BIO band) are
        passed to :func:`~ecoaudio.core.analysis.indices.compute_indices`.
        """
        error = self._validate_input_path(filepath)
        if error:
            return ServiceResult.fail(error)

        try:
            result = compute_indices_from_file(filepath, window_size=window_size, **index_options)
            return ServiceResult.ok(
                data=result,
                message=f"Computed indices for {result.summary.duration:.1f}s audio",
            )
        except Exception as e:
            return ServiceResult.fail(f"Index calculation failed: {e}")

    def calculate_temporal(
        self,
        filepath: str,
        window_duration: float = DEFAULT_SEGMENT_DURATION,
        hop_duration: Optional[float] = None,
        output_csv: Optional[str] = None,
        spectral_dir: Optional[str] = None,
        window_size: int = DEFAULT_WINDOW_SIZE,
        **index_options,
    ) -> ServiceResult[TemporalIndicesResult]:
        """
        Summary indices per window, optionally written to CSV.

        Args:
            filepath: Audio file
            window_duration: Window length in seconds
            hop_duration: Seconds between windows (default: window_duration)
            output_csv: Where to write the summary table
            spectral_dir: Where to write one spectral index matrix per index
            window_size: FFT window
            **index_options: Passed to :func:`~ecoaudio.core.analysis.indices.compute_indices`
        """
        error = self._validate_input_path(filepath)
        if error:
            return ServiceResult.fail(error)

        try:
            recording = AudioRecording.from_file(filepath)
            df = temporal_indices(
                recording, window_duration, hop_duration, window_size=window_size, **index_options
            )
            result = TemporalIndicesResult(
                windows=df,
                source_path=filepath,
                window_duration=window_duration,
                total_duration=recording.duration,
            )

            if output_csv:
                self._validate_output_path(output_csv)
                df.to_csv(output_csv, index=False)
                result.output_path = output_csv
            if spectral_dir:
                matrices = temporal_spectral_indices(
                    recording, window_duration, window_size=window_size, **index_options
                )
                result.spectral_paths = write_spectral_index_matrices(matrices, spectral_dir, Path(filepath).stem)

            return ServiceResult.ok(
                data=result,
                message=f"Computed indices for {result.num_windows} windows of {window_duration:g}s",
            )
        except Exception as e:
            return ServiceResult.fail(f"Temporal index calculation failed: {e}")

    def calculate_batch(
        self,
        directory: str,
        output_csv: Optional[str] = None,
        recursive: bool = True,
        max_workers: int = 1,
        window_size: int = DEFAULT_WINDOW_SIZE,
        **index_options,
    ) -> ServiceResult[BatchIndicesResult]:
        """Summary indices of every audio file in a directory."""
        error = self._validate_input_path(directory)
        if error:
            return ServiceResult.fail(error)

        files = self._get_audio_files(directory, recursive=recursive)
        if not files:
            return ServiceResult.fail(f"No audio files found in {directory}")

        progress = BatchProgress(total=len(files))

        def on_progress(completed: int, total: int) -> None:
            progress.completed = completed
            self._report_progress(progress)

        try:
            if output_csv:
                self._validate_output_path(output_csv)
            df = batch_compute_indices(
                files,
                max_workers=max_workers,
                output_csv=output_csv,
                progress_callback=on_progress,
                window_size=window_size,
                **index_options,
            )
        except Exception as e:
            return ServiceResult.fail(f"Batch index calculation failed: {e}")

        successful = int(df["success"].sum())
        failed = len(df) - successful
        warnings = []
        if failed:
            for _, row in df[~df["success"]].iterrows():
                warnings.append(f"{row['filepath']}: {row['error']}")

        return ServiceResult.ok(
            data=BatchIndicesResult(results=df, successful=successful, failed=failed, output_path=output_csv),
            message=f"Computed indices for {successful}/{len(df)} files",
            warnings=warnings,
        )
