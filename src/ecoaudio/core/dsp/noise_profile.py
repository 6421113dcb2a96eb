"""
Noise Profiles
==============

Per-frequency-bin estimates of background noise in a spectrogram. A noise
profile has one value per column (frequency bin) and is subtracted from
every frame by the routines in :mod:`ecoaudio.core.dsp.snr`.

Several estimators are provided:

- modal: the mode of each bin's value histogram plus a multiple of the
  noise standard deviation (Lamel et al. 1981)
- mean and median of each bin
- mean of the quietest frames
- mean of the quietest cells of each bin
- Briggs: divide by a low-percentile profile and take the square root

Example:
    >>> from ecoaudio.core.dsp.noise_profile import calculate_modal_noise_profile
    >>> profile = calculate_modal_noise_profile(db_spectrogram, sd_count=0.0)
    >>> profile.noise_thresholds.shape
    (257,)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ecoaudio.core.dsp.snr import (
    calculate_modal_background_noise_in_signal,
    get_mode_and_one_standard_deviation,
)
from ecoaudio.core.matrix import filter_moving_average, normalise

logger = logging.getLogger(__name__)

__all__ = [
    "NoiseProfile",
    "calculate_modal_noise_profile",
    "calculate_mean_noise_profile",
    "calculate_median_noise_profile",
    "get_noise_profile_from_lowest_percentile_frames",
    "get_noise_profile_bin_wise_from_lowest_percentile_cells",
    "calculate_noise_using_lamels_algorithm",
    "briggs_noise_reduction_by_division_and_sqrt",
]

# Lamel's algorithm bins normalised dB values into a fixed histogram.
LAMEL_BIN_COUNT = 100
LAMEL_SMOOTHING_WINDOW = 7
LAMEL_UPPER_BOUND_FOR_MODE = 0.666


@dataclass(frozen=True)
class NoiseProfile:
    """
    Background noise statistics for each frequency bin.

    Only the fields relevant to the estimator that produced the profile are
    populated; the others are None.
    """

    noise_thresholds: np.ndarray
    noise_mode: Optional[np.ndarray] = None
    noise_sd: Optional[np.ndarray] = None
    noise_mean: Optional[np.ndarray] = None
    noise_median: Optional[np.ndarray] = None
    min_db: Optional[np.ndarray] = None
    max_db: Optional[np.ndarray] = None

    @property
    def bin_count(self) -> int:
        return int(self.noise_thresholds.shape[0])

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for name in ("noise_thresholds", "noise_mode", "noise_sd", "noise_mean", "noise_median", "min_db", "max_db"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value.tolist()
        return result


def calculate_modal_noise_profile(matrix: np.ndarray, sd_count: float) -> NoiseProfile:
    """
    Modal noise estimate for every frequency bin.

    Each column is treated as a signal and passed through
    :func:`~ecoaudio.core.dsp.snr.calculate_modal_background_noise_in_signal`.

    Args:
        matrix: Spectrogram (frames x bins), normally in decibels
        sd_count: Number of noise standard deviations added to the mode

    Returns:
        NoiseProfile with mode, sd, thresholds and per-bin min/max
    """
    m = np.asarray(matrix, dtype=np.float64)
    cols = m.shape[1]
    modes = np.empty(cols)
    sds = np.empty(cols)
    thresholds = np.empty(cols)
    mins = np.empty(cols)
    maxs = np.empty(cols)

    for col in range(cols):
        bgn = calculate_modal_background_noise_in_signal(m[:, col], sd_count)
        modes[col] = bgn.noise_mode
        sds[col] = bgn.noise_sd
        thresholds[col] = bgn.noise_threshold
        mins[col] = bgn.min_db
        maxs[col] = bgn.max_db

    return NoiseProfile(
        noise_thresholds=thresholds,
        noise_mode=modes,
        noise_sd=sds,
        min_db=mins,
        max_db=maxs,
    )


def calculate_mean_noise_profile(matrix: np.ndarray) -> NoiseProfile:
    """Mean and standard deviation of each bin; the threshold is the mean."""
    m = np.asarray(matrix, dtype=np.float64)
    mean = m.mean(axis=0)
    return NoiseProfile(noise_thresholds=mean.copy(), noise_mean=mean, noise_sd=m.std(axis=0))


def calculate_median_noise_profile(matrix: np.ndarray) -> NoiseProfile:
    """Median of each bin; the threshold is the median."""
    m = np.asarray(matrix, dtype=np.float64)
    median = np.median(m, axis=0)
    return NoiseProfile(noise_thresholds=median.copy(), noise_median=median)


def _cutoff(count: int, percentile: float) -> int:
    if not 0 < percentile <= 100:
        raise ValueError(f"percentile must be in (0, 100], got {percentile}")
    return max(1, int(count * percentile / 100.0))


def get_noise_profile_from_lowest_percentile_frames(matrix: np.ndarray, percentile: float) -> np.ndarray:
    """
    Average spectrum of the quietest frames.

    Frames are ranked by total energy and the lowest ``percentile`` percent
    (at least one frame) are averaged.
    """
    m = np.asarray(matrix, dtype=np.float64)
    n = _cutoff(m.shape[0], percentile)
    order = np.argsort(m.sum(axis=1), kind="stable")
    return m[order[:n]].mean(axis=0)


def get_noise_profile_bin_wise_from_lowest_percentile_cells(matrix: np.ndarray, percentile: float) -> np.ndarray:
    """
    Average of the lowest ``percentile`` percent of cells in each bin.

    Unlike the frame-based estimate, each bin picks its own quiet cells, which
    suits short recordings where few whole frames are free of signal.
    """
    m = np.asarray(matrix, dtype=np.float64)
    n = _cutoff(m.shape[0], percentile)
    return np.sort(m, axis=0)[:n].mean(axis=0)


def calculate_noise_using_lamels_algorithm(db_array: np.ndarray) -> Tuple[float, float, float, float]:
    """
    Estimate modal noise in a decibel signal (Lamel et al. 1981).

    Values are normalised to [0, 1], binned into a fixed 100 bin histogram
    smoothed with a width 7 window, and the mode is constrained to the lower
    two thirds of the range.

    Args:
        db_array: Frame decibel values

    Returns:
        Tuple of (min_db, max_db, noise_mode, noise_sd)
    """
    db = np.asarray(db_array, dtype=np.float64)
    min_db = float(db.min())
    max_db = float(db.max())
    db_range = max_db - min_db
    if db_range == 0.0:
        return min_db, max_db, min_db, 0.0

    normalised = normalise(db)
    histo = np.bincount(
        np.clip((normalised * LAMEL_BIN_COUNT).astype(np.int64), 0, LAMEL_BIN_COUNT - 1),
        minlength=LAMEL_BIN_COUNT,
    )
    smooth = filter_moving_average(histo, LAMEL_SMOOTHING_WINDOW)
    index_of_mode, index_of_one_sd = get_mode_and_one_standard_deviation(smooth, LAMEL_UPPER_BOUND_FOR_MODE)

    bin_width = db_range / LAMEL_BIN_COUNT
    noise_mode = min_db + (index_of_mode + 1) * bin_width
    noise_sd = (index_of_mode - index_of_one_sd) * bin_width
    return min_db, max_db, noise_mode, noise_sd


def briggs_noise_reduction_by_division_and_sqrt(matrix: np.ndarray, percentile: float) -> np.ndarray:
    """
    Flatten a spectrogram by dividing by its background and taking the square root.

    The background is the bin-wise mean of the lowest ``percentile`` percent of
    cells, smoothed with a width 3 window. Bins with a zero background are left
    unscaled.
    """
    m = np.asarray(matrix, dtype=np.float64)
    profile = get_noise_profile_bin_wise_from_lowest_percentile_cells(m, percentile)
    profile = filter_moving_average(profile, 3)
    profile = np.where(profile == 0.0, 1.0, profile)
    ratio = np.clip(m / profile, 0.0, None)
    return np.sqrt(ratio)
