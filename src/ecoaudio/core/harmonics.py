"""
Harmonic stack detection.

Each frame of a frequency band is autocorrelated and the DCT of the
autocorrelation is searched for its strongest periodic component. The
component index gives the spacing between harmonics (the formant gap);
frames whose gap falls outside the expected range are scored zero.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import numpy as np
from scipy.fft import dct

from ecoaudio.core.events import AcousticEvent, convert_score_array_to_events
from ecoaudio.core.matrix import filter_moving_average, submatrix

logger = logging.getLogger(__name__)

# the lowest DCT coefficients describe the overall slope of the autocorrelation, not harmonics
_IGNORED_DCT_COEFFICIENTS = 3


@dataclass
class HarmonicParameters:
    """Parameters for detecting stacks of harmonics in a band."""

    min_hz: int
    max_hz: int
    decibel_threshold: float = 6.0
    dct_threshold: float = 0.15
    min_duration: float = 0.1
    max_duration: float = 1.0
    min_formant_gap: int = 100
    max_formant_gap: int = 1000

    def __post_init__(self) -> None:
        if self.min_hz < 0 or self.min_hz >= self.max_hz:
            raise ValueError(f"Invalid band [{self.min_hz}, {self.max_hz}] Hz")
        if self.min_duration > self.max_duration:
            raise ValueError(f"min_duration ({self.min_duration}) exceeds max_duration ({self.max_duration})")
        if self.min_formant_gap > self.max_formant_gap:
            raise ValueError(
                f"min_formant_gap ({self.min_formant_gap}) exceeds max_formant_gap ({self.max_formant_gap})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


def detect_harmonics_in_matrix(m: np.ndarray, decibel_threshold: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Harmonic intensity of each frame of a band matrix.

    Returns:
        Tuple of (frame maximum decibels, harmonic intensity, index of the
        strongest DCT coefficient). Frames whose maximum is below
        ``decibel_threshold`` have intensity 0 and index 0.
    """
    frames, bins = m.shape
    db = m.max(axis=1) if bins else np.zeros(frames)
    intensity = np.zeros(frames)
    max_index = np.zeros(frames, dtype=np.int64)
    if bins <= _IGNORED_DCT_COEFFICIENTS:
        return db, intensity, max_index

    for r in np.nonzero(db >= decibel_threshold)[0]:
        row = m[r]
        xr = np.correlate(row, row, mode="full")[bins - 1 :]
        if xr[0] == 0:
            continue
        norm_xr = xr / xr[0]
        coefficients = dct(norm_xr - norm_xr.mean(), type=2, norm="ortho")
        coefficients[:_IGNORED_DCT_COEFFICIENTS] = 0.0
        idx = int(np.argmax(coefficients))
        intensity[r] = coefficients[idx]
        max_index[r] = idx
    return db, intensity, max_index


def detect_harmonics(
    sonogram_data: np.ndarray,
    params: HarmonicParameters,
    nyquist: int,
    frames_per_second: float,
    fbin_width: float,
    segment_start_offset: float = 0.0,
) -> Tuple[np.ndarray, np.ndarray, List[AcousticEvent]]:
    """
    Find harmonic stacks in a decibel spectrogram.

    Args:
        sonogram_data: Decibel spectrogram (frames x bins)
        params: Band, thresholds and formant gap range
        nyquist: Nyquist frequency of the recording
        frames_per_second: Frame rate of the spectrogram
        fbin_width: Frequency bin width reported on events
        segment_start_offset: Seconds added to event times

    Returns:
        Tuple of (smoothed harmonic scores, formant gap per frame in Hz,
        events)
    """
    data = np.asarray(sonogram_data, dtype=np.float64)
    frame_count, bin_count = data.shape

    freq_bin_width = nyquist / bin_count
    min_bin = int(round(params.min_hz / freq_bin_width))
    max_bin = min(bin_count - 1, int(round(params.max_hz / freq_bin_width)))
    band_bins = max_bin - min_bin + 1

    band = submatrix(data, 0, min_bin, frame_count - 1, max_bin)
    _, scores, max_index = detect_harmonics_in_matrix(band, params.decibel_threshold)

    gaps = np.zeros(frame_count)
    for r in range(frame_count):
        if scores[r] < params.dct_threshold or max_index[r] == 0:
            continue
        formant_gap = 2 * band_bins / max_index[r] * freq_bin_width
        if params.min_formant_gap <= formant_gap <= params.max_formant_gap:
            gaps[r] = formant_gap
        else:
            scores[r] = 0.0

    scores = filter_moving_average(scores, 5)
    # scores are DCT intensities, so events use the DCT threshold
    events = convert_score_array_to_events(
        scores,
        params.min_hz,
        params.max_hz,
        frames_per_second,
        fbin_width,
        params.dct_threshold,
        params.min_duration,
        params.max_duration,
        segment_start_offset,
        name="harmonics",
    )
    logger.debug(f"Harmonic detection in {params.min_hz}-{params.max_hz} Hz found {len(events)} events")
    return scores, gaps, events
