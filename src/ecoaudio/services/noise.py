# services/noise.py
"""
Service for signal-to-noise ratio and noise reduction.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from ecoaudio.core.audio import AudioRecording
from ecoaudio.core.dsp.snr import SnrStatistics, calculate_snr_short_recording
from ecoaudio.core.spectrogram import SonogramConfig, SpectrogramStandard

from .base import BaseService, ServiceResult


@dataclass
class RecordingSnrResult:
    """Frame-level SNR of a recording and the noise profile of its spectrogram."""

    source_path: str
    duration: float
    snr: Dict[str, Any]
    noise_reduction_type: str
    noise_profile: Optional[np.ndarray] = None
    output_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "source_path": self.source_path,
            "duration": self.duration,
            "noise_reduction_type": self.noise_reduction_type,
            **self.snr,
        }
        if self.noise_profile is not None:
            result["noise_profile_mean"] = float(np.mean(self.noise_profile))
        if self.output_path:
            result["output_path"] = self.output_path
        return result


class NoiseService(BaseService):
    """
    Service for SNR measurement and spectrogram noise reduction.
    """

    def recording_snr(
        self,
        filepath: str,
        config: Optional[SonogramConfig] = None,
        output_csv: Optional[str] = None,
    ) -> ServiceResult[RecordingSnrResult]:
        """
        SNR statistics of a recording.

        Args:
            filepath: Audio file
            config: Spectrogram settings, including the noise reduction
            output_csv: Optional path for the noise-reduced spectrogram
        """
        error = self._validate_input_path(filepath)
        if error:
            return ServiceResult.fail(error)

        try:
            config = config or SonogramConfig(noise_reduction_type="standard")
            recording = AudioRecording.from_file(filepath)
            sonogram = SpectrogramStandard(config, recording)

            result = RecordingSnrResult(
                source_path=filepath,
                duration=recording.duration,
                snr=sonogram.snr_data.to_dict(),
                noise_reduction_type=config.noise_reduction_type.value,
                noise_profile=sonogram.modal_noise_profile,
            )
            if output_csv:
                self._validate_output_path(output_csv)
                pd.DataFrame(sonogram.data).to_csv(output_csv, index=False)
                result.output_path = output_csv

            return ServiceResult.ok(data=result, message=f"SNR of {recording.duration:.1f}s audio")
        except Exception as e:
            return ServiceResult.fail(f"SNR calculation failed: {e}")

    def band_snr(
        self,
        filepath: str,
        start_time: float,
        duration: float,
        min_hz: float,
        max_hz: float,
        threshold: float = 3.0,
        config: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult[SnrStatistics]:
        """SNR of a call within a time/frequency box of a short recording."""
        error = self._validate_input_path(filepath)
        if error:
            return ServiceResult.fail(error)
        if min_hz >= max_hz:
            return ServiceResult.fail(f"min_hz ({min_hz}) must be below max_hz ({max_hz})")

        try:
            stats = calculate_snr_short_recording(filepath, config, start_time, duration, min_hz, max_hz, threshold)
            return ServiceResult.ok(data=stats, message=f"SNR in {min_hz:g}-{max_hz:g} Hz: {stats.snr:.2f} dB")
        except Exception as e:
            return ServiceResult.fail(f"Band SNR calculation failed: {e}")
