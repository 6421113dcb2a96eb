# services/events.py
"""
Service for acoustic event detection.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from ecoaudio.core.audio import AudioRecording
from ecoaudio.core.events import (
    EVENTS_FILE_HEADER,
    AcousticEvent,
    FeltResult,
    find_matching_events,
    read_chars_to_trinary_matrix,
    write_events,
)
from ecoaudio.core.harmonics import HarmonicParameters, detect_harmonics
from ecoaudio.core.spectrogram import SonogramConfig, SpectrogramStandard

from .base import BaseService, ServiceResult


@dataclass
class HarmonicsResult:
    """Harmonic stacks found in one recording."""

    source_path: str
    params: HarmonicParameters
    scores: np.ndarray
    formant_gaps: np.ndarray
    events: List[AcousticEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": self.source_path,
            "params": self.params.to_dict(),
            "event_count": len(self.events),
            "events": [e.to_dict() for e in self.events],
        }


class EventDetectionService(BaseService):
    """
    Service for template matching and harmonic detection.
    """

    def _write_events(self, events: List[AcousticEvent], source: str, duration: float, output_path: str) -> None:
        self._validate_output_path(output_path)
        header = f"{EVENTS_FILE_HEADER}\n{Path(source).name}\t{duration:.3f}\t{len(events)}"
        Path(output_path).write_text(write_events(events, header))

    def find_events_like_this(
        self,
        template_path: str,
        filepath: str,
        min_hz: int,
        max_hz: int,
        threshold: float,
        output_path: Optional[str] = None,
        **kwargs,
    ) -> ServiceResult[FeltResult]:
        """
        Match a trinary text template against a recording.

        Args:
            template_path: Text template of '+', '-' and '0' characters
            filepath: Audio file to search
            min_hz: Lower bound of the band searched
            max_hz: Upper bound of the band searched
            threshold: Score threshold in decibels
            output_path: Optional tab-separated events file
            **kwargs: Passed to :func:`~ecoaudio.core.events.find_matching_events`
        """
        for path in (template_path, filepath):
            error = self._validate_input_path(path)
            if error:
                return ServiceResult.fail(error)

        try:
            template = read_chars_to_trinary_matrix(template_path)
            recording = AudioRecording.from_file(filepath)
            result = find_matching_events(template, recording, min_hz, max_hz, threshold, **kwargs)
            if output_path:
                self._write_events(result.events, filepath, recording.duration, output_path)
            return ServiceResult.ok(
                data=result,
                message=f"Found {len(result.events)} events matching {Path(template_path).name}",
                output_path=output_path,
            )
        except Exception as e:
            return ServiceResult.fail(f"Template matching failed: {e}")

    def detect_harmonics(
        self,
        filepath: str,
        params: HarmonicParameters,
        window_size: int = 512,
        output_path: Optional[str] = None,
    ) -> ServiceResult[HarmonicsResult]:
        """Find harmonic stacks in a band of a recording."""
        error = self._validate_input_path(filepath)
        if error:
            return ServiceResult.fail(error)

        try:
            recording = AudioRecording.from_file(filepath)
            if params.max_hz > recording.nyquist:
                return ServiceResult.fail(
                    f"max_hz ({params.max_hz}) exceeds the Nyquist frequency ({recording.nyquist})"
                )
            config = SonogramConfig(window_size=window_size, noise_reduction_type="standard")
            sonogram = SpectrogramStandard(config, recording)
            scores, gaps, events = detect_harmonics(
                sonogram.data,
                params,
                sonogram.nyquist,
                sonogram.frames_per_second,
                sonogram.fbin_width,
            )
            if output_path:
                self._write_events(events, filepath, recording.duration, output_path)
            return ServiceResult.ok(
                data=HarmonicsResult(filepath, params, scores, gaps, events),
                message=f"Found {len(events)} harmonic events",
            )
        except Exception as e:
            return ServiceResult.fail(f"Harmonic detection failed: {e}")
