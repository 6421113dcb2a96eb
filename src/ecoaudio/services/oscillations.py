# services/oscillations.py
"""
Service for oscillation rate analysis.
"""

from typing import Optional

import pandas as pd

from ecoaudio.core.analysis.oscillations import (
    DEFAULT_SAMPLE_LENGTH,
    DEFAULT_SENSITIVITY_THRESHOLD,
    OscillationAlgorithm,
    OscillationsResult,
    generate_oscillation_data,
)
from ecoaudio.core.audio import AudioRecording

from .base import BaseService, ServiceResult


class OscillationsService(BaseService):
    """Service computing frequency-by-oscillation matrices."""

    def compute(
        self,
        filepath: str,
        sensitivity: float = DEFAULT_SENSITIVITY_THRESHOLD,
        sample_length: int = DEFAULT_SAMPLE_LENGTH,
        algorithm: str = OscillationAlgorithm.AUTOCORR_SVD_FFT.value,
        output_csv: Optional[str] = None,
    ) -> ServiceResult[OscillationsResult]:
        """
        Oscillation matrix and spectral index of a recording.

        Args:
            filepath: Audio file
            sensitivity: Minimum fraction of power at the spectral peak
            sample_length: Frames per autocorrelation sample
            algorithm: Algorithm name (case insensitive)
            output_csv: Optional path for the matrix; rows are oscillation
                rates and columns frequency bins
        """
        error = self._validate_input_path(filepath)
        if error:
            return ServiceResult.fail(error)

        try:
            algo = OscillationAlgorithm(algorithm)
        except ValueError:
            names = ", ".join(a.value for a in OscillationAlgorithm)
            return ServiceResult.fail(f"Unknown oscillation algorithm: {algorithm} (expected one of {names})")

        try:
            recording = AudioRecording.from_file(filepath)
            result = generate_oscillation_data(recording, sensitivity, sample_length, algorithm=algo)
            if output_csv:
                self._validate_output_path(output_csv)
                df = pd.DataFrame(result.freq_oscillation_data)
                df.index = pd.Index(df.index * result.oscillation_bin_width, name="oscillation_hz")
                df.to_csv(output_csv)
            return ServiceResult.ok(
                data=result,
                message=f"Oscillation matrix {result.freq_oscillation_data.shape[0]} rates x "
                f"{result.freq_oscillation_data.shape[1]} bins",
            )
        except Exception as e:
            return ServiceResult.fail(f"Oscillation analysis failed: {e}")
