"""
Signal-to-Noise Ratio and Noise Reduction
=========================================

Frame energy, decibel conversion, background noise estimation and the
family of spectrogram noise reduction methods selected by
:class:`NoiseReductionType`.

Spectrogram matrices are frames x frequency bins. Functions return new
arrays and never modify their inputs.

Example:
    >>> from ecoaudio.core.dsp.snr import NoiseReductionType, noise_reduce
    >>> reduced, profile = noise_reduce(db_matrix, NoiseReductionType.STANDARD, 2.0)
    >>>
    >>> from ecoaudio.core.dsp.snr import SNR
    >>> snr = SNR.from_frames(frames)
    >>> print(f"SNR = {snr.snr:.1f} dB over {len(snr.frame_decibels)} frames")
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

import numpy as np
from scipy import ndimage

from ecoaudio.core.matrix import filter_moving_average, get_max_index, get_percentile_bin, histogram, matrix_to_binary

if TYPE_CHECKING:
    from ecoaudio.core.spectrogram.sonogram import BaseSonogram

logger = logging.getLogger(__name__)

__all__ = [
    # Constants
    "FRACTIONAL_BOUND_FOR_MODE",
    "FRACTIONAL_BOUND_FOR_LOW_PERCENTILE",
    "MINIMUM_DB_BOUND_FOR_ZERO_SIGNAL",
    "MINIMUM_DB_BOUND_FOR_ENVIRONMENTAL_NOISE",
    "MIN_LOG_ENERGY_REFERENCE",
    "MAX_LOG_ENERGY_REFERENCE",
    "DEFAULT_STDDEV_COUNT",
    "DEFAULT_NH_BG_THRESHOLD",
    # Types
    "NoiseReductionType",
    "BackgroundNoise",
    "SnrStatistics",
    "SNR",
    # Energy and decibels
    "calculate_log_energy_of_signal_frames",
    "signal_to_decibels",
    "convert_log_energy_to_decibels",
    "normalise_decibel_array_zero_one",
    "rms_normalization",
    "decibels_in_subband",
    "reduce_freq_bins_in_spectrogram",
    "segment_array_of_intensity_values",
    # Frequency bands
    "calculate_freq_band_av_intensity",
    "calculate_freq_band_av_intensity_minus_buffer_intensity",
    "calculate_whistle_intensity",
    "subband_intensity_noise_reduced",
    "calculate_snr_in_freq_band",
    "calculate_snr_in_sonogram_band",
    "calculate_snr_short_recording",
    # Waveform noise
    "subtract_background_noise_from_waveform_db",
    "subtract_background_noise_from_signal",
    "calculate_modal_background_noise_in_signal",
    "get_mode_and_one_standard_deviation",
    "subtract_and_truncate_to_zero",
    "truncate_negative_values_to_zero",
    # Spectrogram noise
    "key_to_noise_reduction_type",
    "noise_reduce",
    "noise_reduce_standard",
    "noise_reduce_fixed_range",
    "noise_reduce_flatten_and_trim",
    "noise_reduce_mean",
    "noise_reduce_median",
    "subtract_and_truncate_noise_profile",
    "truncate_bg_noise_from_spectrogram",
    "subtract_bg_noise_from_spectrogram",
    "set_dynamic_range",
    "set_local_bounds",
    "remove_neighbourhood_background_noise",
]

# Upper limit on the modal noise position in a value histogram.
FRACTIONAL_BOUND_FOR_MODE = 0.95
FRACTIONAL_BOUND_FOR_LOW_PERCENTILE = 0.2
MINIMUM_DB_BOUND_FOR_ZERO_SIGNAL = -100.0
MINIMUM_DB_BOUND_FOR_ENVIRONMENTAL_NOISE = -90.0
MIN_LOG_ENERGY_REFERENCE = -8.0
# log10(1.0): maximum frame amplitude is 1.0
MAX_LOG_ENERGY_REFERENCE = 0.0
# Noise standard deviations added to the noise threshold.
DEFAULT_STDDEV_COUNT = 0.0
# Minimum decibel bound when removing neighbourhood background noise.
DEFAULT_NH_BG_THRESHOLD = 2.0

# Applies only to frame decibels before background removal.
HIGH_ENERGY_THRESHOLD_DB = -10.0


class NoiseReductionType(Enum):
    """Spectrogram noise reduction methods understood by :func:`noise_reduce`."""

    NONE = "none"
    STANDARD = "standard"
    MODAL = "modal"
    BINARY = "binary"
    FIXED_DYNAMIC_RANGE = "fixed_dynamic_range"
    MEAN = "mean"
    MEDIAN = "median"
    LOWEST_PERCENTILE = "lowest_percentile"
    BRIGGS_PERCENTILE = "briggs_percentile"
    SHORT_RECORDING = "short_recording"
    FLATTEN_AND_TRIM = "flatten_and_trim"


def key_to_noise_reduction_type(key: Optional[str]) -> NoiseReductionType:
    """
    Parse a noise reduction name.

    Matching ignores case, underscores, hyphens and spaces, so "FlattenAndTrim",
    "flatten_and_trim" and "FLATTEN-AND-TRIM" are equivalent. Unknown or empty
    keys map to ``NoiseReductionType.NONE``.
    """
    if not key:
        return NoiseReductionType.NONE
    wanted = "".join(ch for ch in key.lower() if ch.isalnum())
    for member in NoiseReductionType:
        if member.value.replace("_", "") == wanted:
            return member
    logger.warning(f"Unknown noise reduction type '{key}', no noise reduction will be applied")
    return NoiseReductionType.NONE


@dataclass(frozen=True)
class BackgroundNoise:
    """Background noise estimate for a 1-D signal."""

    noise_mode: float
    noise_sd: float
    noise_threshold: float
    min_db: float
    max_db: float
    snr: float
    noise_reduced_signal: Optional[np.ndarray] = None

    def with_signal(self, signal: np.ndarray) -> "BackgroundNoise":
        return BackgroundNoise(
            noise_mode=self.noise_mode,
            noise_sd=self.noise_sd,
            noise_threshold=self.noise_threshold,
            min_db=self.min_db,
            max_db=self.max_db,
            snr=self.snr,
            noise_reduced_signal=signal,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "noise_mode": self.noise_mode,
            "noise_sd": self.noise_sd,
            "noise_threshold": self.noise_threshold,
            "min_db": self.min_db,
            "max_db": self.max_db,
            "snr": self.snr,
        }


@dataclass
class SnrStatistics:
    """SNR of a call within a time/frequency box of a spectrogram."""

    threshold: float
    snr: float
    fraction_of_frames_exceeding_threshold: float
    fraction_of_frames_exceeding_one_third_snr: float
    extract_duration: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold": self.threshold,
            "snr": self.snr,
            "fraction_of_frames_exceeding_threshold": self.fraction_of_frames_exceeding_threshold,
            "fraction_of_frames_exceeding_one_third_snr": self.fraction_of_frames_exceeding_one_third_snr,
            "extract_duration": self.extract_duration,
        }


# =============================================================================
# Frame energy
# =============================================================================


def _log_energy(mean_energy: np.ndarray) -> np.ndarray:
    floor = MIN_LOG_ENERGY_REFERENCE - MAX_LOG_ENERGY_REFERENCE
    log_energy = np.full(mean_energy.shape, floor)
    positive = mean_energy > 0.0
    zero_frames = np.count_nonzero(~positive)
    if zero_frames:
        logger.warning(f"Zero energy in {zero_frames} frame(s)")
    with np.errstate(divide="ignore"):
        log_e = np.log10(mean_energy[positive])
    log_energy[positive] = np.where(log_e < MIN_LOG_ENERGY_REFERENCE, floor, log_e - MAX_LOG_ENERGY_REFERENCE)
    return log_energy


def calculate_log_energy_of_signal_frames(
    signal: np.ndarray, frame_ids: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Log10 of the average sample energy of each frame.

    Values are on an absolute scale where a full-scale frame (amplitude 1.0)
    has log energy 0. Frames quieter than 10^-8, including silent frames,
    are clamped to -8.

    Args:
        signal: Either a 2-D array of frames (frames x samples), or a 1-D
            waveform when ``frame_ids`` is given
        frame_ids: Optional (n, 2) array of inclusive [start, end] sample
            indices for each frame

    Returns:
        1-D array of frame log energies
    """
    x = np.asarray(signal, dtype=np.float64)
    if frame_ids is None:
        if x.ndim != 2:
            raise ValueError("frames must be a 2-D array when frame_ids is not given")
        return _log_energy(np.mean(x * x, axis=1))

    ids = np.asarray(frame_ids, dtype=np.int64)
    width = int(ids[0, 1] - ids[0, 0] + 1)
    index = ids[:, :1] + np.arange(width)
    frames = x[index]
    return _log_energy(np.mean(frames * frames, axis=1))


def signal_to_decibels(signal: np.ndarray) -> np.ndarray:
    """20 log10 of each amplitude."""
    with np.errstate(divide="ignore"):
        return 20.0 * np.log10(np.asarray(signal, dtype=np.float64))


def convert_log_energy_to_decibels(log_energy: np.ndarray) -> np.ndarray:
    return np.asarray(log_energy, dtype=np.float64) * 10.0


def normalise_decibel_array_zero_one(db: np.ndarray, max_decibels: float) -> np.ndarray:
    """Map decibels to [0, 1] relative to ``max_decibels``. Non-positive values map to 0."""
    x = np.asarray(db, dtype=np.float64)
    out = np.where(x <= 0.0, 0.0, x / max_decibels)
    return np.minimum(out, 1.0)


def rms_normalization(matrix: np.ndarray) -> np.ndarray:
    """Divide every cell by the root mean square of all cells."""
    m = np.asarray(matrix, dtype=np.float64)
    rms = np.sqrt(np.mean(m * m))
    if rms == 0.0:
        raise ValueError("Cannot RMS-normalise an all-zero matrix")
    return m / rms


def decibels_in_subband(db_matrix: np.ndarray, min_hz: float, max_hz: float, freq_bin_width: float) -> np.ndarray:
    """Per-frame sum of decibel values in bins ``int(min_hz/w)`` to ``int(max_hz/w)`` inclusive."""
    min_bin = int(min_hz / freq_bin_width)
    max_bin = int(max_hz / freq_bin_width)
    return np.asarray(db_matrix, dtype=np.float64)[:, min_bin : max_bin + 1].sum(axis=1)


def reduce_freq_bins_in_spectrogram(spectrogram: np.ndarray, subband_count: int) -> np.ndarray:
    """
    Sum the frequency bins of each frame into ``subband_count`` equal subbands.

    Subbands are ``bin_count // subband_count`` bins wide; the last subband
    also takes the remaining top bins.
    """
    m = np.asarray(spectrogram, dtype=np.float64)
    frames, n = m.shape
    if not 0 < subband_count <= n:
        raise ValueError(f"subband_count must be between 1 and {n}, got {subband_count}")

    width = n // subband_count
    out = np.empty((frames, subband_count))
    for j in range(subband_count - 1):
        out[:, j] = m[:, j * width : (j + 1) * width].sum(axis=1)
    out[:, subband_count - 1] = m[:, (subband_count - 1) * width :].sum(axis=1)
    return out


def segment_array_of_intensity_values(values: np.ndarray, threshold: float, min_length: int) -> List[Tuple[int, int]]:
    """
    Find runs of values above a threshold.

    Each event is ``(start, end)`` where ``start`` is the first index above
    the threshold and ``end`` the first index back at or below it. Events with
    ``end - start + 1 < min_length`` are dropped, as is a run still open at
    the end of the array.
    """
    events = []
    in_event = False
    start = 0
    for i, value in enumerate(np.asarray(values, dtype=np.float64)):
        if not in_event and value > threshold:
            in_event = True
            start = i
        elif in_event and value <= threshold:
            in_event = False
            if i - start + 1 >= min_length:
                events.append((start, i))
    return events


# =============================================================================
# Frequency band intensity
# =============================================================================


def calculate_freq_band_av_intensity(sonogram: np.ndarray, min_hz: float, max_hz: float, nyquist: float) -> np.ndarray:
    """
    Average intensity of each frame within a frequency band.

    Bins ``[min_bin, max_bin)`` are summed and divided by
    ``max_bin - min_bin + 1``. Bins outside the matrix are ignored.
    """
    m = np.asarray(sonogram, dtype=np.float64)
    bin_count = m.shape[1]
    bin_width = nyquist / bin_count
    min_bin = int(round(min_hz / bin_width))
    max_bin = int(round(max_hz / bin_width))
    bins_in_band = max_bin - min_bin + 1
    lo = max(min_bin, 0)
    hi = min(max_bin, bin_count)
    if hi <= lo:
        return np.zeros(m.shape[0])
    return m[:, lo:hi].sum(axis=1) / bins_in_band


def calculate_freq_band_av_intensity_minus_buffer_intensity(
    sonogram: np.ndarray,
    min_hz: float,
    max_hz: float,
    bottom_hz_buffer: float,
    top_hz_buffer: float,
    nyquist: float,
) -> np.ndarray:
    """Band intensity minus the intensity of the sidebands immediately below and above it."""
    band = calculate_freq_band_av_intensity(sonogram, min_hz, max_hz, nyquist)
    bottom = calculate_freq_band_av_intensity(sonogram, min_hz - bottom_hz_buffer, min_hz, nyquist)
    top = calculate_freq_band_av_intensity(sonogram, max_hz, max_hz + top_hz_buffer, nyquist)
    return band - bottom - top


def calculate_whistle_intensity(
    sonogram: np.ndarray,
    min_hz: float,
    max_hz: float,
    bottom_hz_buffer: float,
    top_hz_buffer: float,
    nyquist: float,
) -> np.ndarray:
    """Narrow-band (whistle) intensity: band energy in excess of both sidebands."""
    return calculate_freq_band_av_intensity_minus_buffer_intensity(
        sonogram, min_hz, max_hz, bottom_hz_buffer, top_hz_buffer, nyquist
    )


def subband_intensity_noise_reduced(
    sonogram: np.ndarray,
    min_hz: float,
    max_hz: float,
    nyquist: float,
    smooth_duration: float,
    frames_per_second: float,
) -> Tuple[np.ndarray, float, float]:
    """
    Band intensity, smoothed and with modal background noise removed.

    Returns:
        Tuple of (noise reduced intensity, noise mode, noise sd)
    """
    intensity = calculate_freq_band_av_intensity(sonogram, min_hz, max_hz, nyquist)

    smooth_window = int(round(frames_per_second * smooth_duration))
    if smooth_window != 0 and smooth_window % 2 == 0:
        smooth_window += 1
    intensity = filter_moving_average(intensity, smooth_window)

    bgn = subtract_background_noise_from_signal(intensity, sd_count=0.1)
    return bgn.noise_reduced_signal, bgn.noise_mode, bgn.noise_sd


def calculate_snr_in_freq_band(
    data: np.ndarray,
    start_frame: int,
    frame_span: int,
    min_bin: int,
    max_bin: int,
    threshold: float,
) -> SnrStatistics:
    """
    SNR of a call within a rectangular region of a decibel spectrogram.

    The background of each bin is the mean of its quietest fifth of frames
    over the whole recording. The SNR is the largest background-subtracted
    value in the call region.

    Args:
        data: Decibel spectrogram (frames x bins)
        start_frame: First frame of the call
        frame_span: Number of frames in the call
        min_bin: Lowest bin of the band (inclusive)
        max_bin: Highest bin of the band (inclusive)
        threshold: Decibel threshold for counting active frames

    Returns:
        SnrStatistics for the region
    """
    m = np.asarray(data, dtype=np.float64)
    frame_count = m.shape[0]
    band = m[:, min_bin : max_bin + 1]

    low_energy_frames = max(1, frame_count // 5)
    background = np.sort(band, axis=0)[:low_energy_frames].mean(axis=0)
    call = band[start_frame : start_frame + frame_span] - background

    snr = max(0.0, float(call.max())) if call.size else 0.0

    positive = np.where(call > 0.0, call, 0.0)
    counts = np.count_nonzero(call > 0.0, axis=1)
    with np.errstate(invalid="ignore", divide="ignore"):
        frame_averages = np.where(counts > 0, positive.sum(axis=1) / np.maximum(counts, 1), 0.0)

    span = call.shape[0]
    if span == 0:
        return SnrStatistics(threshold=threshold, snr=snr, fraction_of_frames_exceeding_threshold=0.0,
                             fraction_of_frames_exceeding_one_third_snr=0.0)

    third_snr = snr * 0.3333
    return SnrStatistics(
        threshold=threshold,
        snr=snr,
        fraction_of_frames_exceeding_threshold=np.count_nonzero(frame_averages > threshold) / span,
        fraction_of_frames_exceeding_one_third_snr=np.count_nonzero(frame_averages > third_snr) / span,
    )


def calculate_snr_in_sonogram_band(
    sonogram: "BaseSonogram",
    start_time: float,
    extract_duration: float,
    min_hz: float,
    max_hz: float,
    threshold: float,
) -> SnrStatistics:
    """
    SNR of a call given in seconds and hertz.

    The region is widened by 0.25 s before the call and 500 Hz on either side
    of the band, then clipped to the spectrogram.
    """
    frame_count, bin_count = sonogram.data.shape
    frame_step = sonogram.frame_step_duration

    buffer_frames = int(round(0.25 / frame_step))
    start_frame = max(0, int(round(start_time / frame_step)) - buffer_frames)
    frame_span = int(round(extract_duration / frame_step)) + buffer_frames
    if start_frame + frame_span >= frame_count:
        frame_span = frame_count - start_frame

    bin_width = sonogram.nyquist / bin_count
    buffer_bins = int(round(500 / bin_width))
    low_bin = max(0, int(round(min_hz / bin_width)) - buffer_bins)
    high_bin = min(bin_count - 1, int(round(max_hz / bin_width)) + buffer_bins)

    stats = calculate_snr_in_freq_band(sonogram.data, start_frame, frame_span, low_bin, high_bin, threshold)
    stats.extract_duration = min(extract_duration, sonogram.duration)
    return stats


def calculate_snr_short_recording(
    path: Union[str, Path],
    config: Optional[Dict[str, Any]],
    start_time: float,
    duration: float,
    min_hz: float,
    max_hz: float,
    threshold: float,
) -> SnrStatistics:
    """
    SNR of a call in a short recording file.

    A decibel spectrogram is built without noise reduction and its DC column
    dropped before the band statistics are calculated.
    """
    from ecoaudio.core.audio import AudioRecording
    from ecoaudio.core.spectrogram import SonogramConfig, SpectrogramStandard

    settings = dict(config or {})
    settings["noise_reduction_type"] = "none"
    recording = AudioRecording.from_file(path)
    sonogram = SpectrogramStandard(SonogramConfig.from_dict(settings), recording)
    sonogram.replace_data(sonogram.data[:, 1:], "dc_removed")
    return calculate_snr_in_sonogram_band(sonogram, start_time, duration, min_hz, max_hz, threshold)


# =============================================================================
# Background noise in 1-D signals
# =============================================================================


def subtract_background_noise_from_waveform_db(db_array: np.ndarray, sd_count: float) -> BackgroundNoise:
    """Remove modal noise from frame decibels using Lamel's algorithm."""
    from ecoaudio.core.dsp.noise_profile import calculate_noise_using_lamels_algorithm

    min_db, max_db, noise_mode, noise_sd = calculate_noise_using_lamels_algorithm(db_array)
    threshold = noise_mode + noise_sd * sd_count
    return BackgroundNoise(
        noise_mode=noise_mode,
        noise_sd=noise_sd,
        noise_threshold=threshold,
        min_db=min_db,
        max_db=max_db,
        snr=max_db - threshold,
        noise_reduced_signal=subtract_and_truncate_to_zero(db_array, threshold),
    )


def subtract_background_noise_from_signal(array: np.ndarray, sd_count: float) -> BackgroundNoise:
    bgn = calculate_modal_background_noise_in_signal(array, sd_count)
    return bgn.with_signal(subtract_and_truncate_to_zero(array, bgn.noise_threshold))


def calculate_modal_background_noise_in_signal(array: np.ndarray, sd_count: float) -> BackgroundNoise:
    """
    Modal background noise of a signal.

    The histogram has ``len(array) // 4`` bins (at most 500) and is smoothed
    with a width 3 window, or width 5 above 250 bins. The mode is reported at
    the upper edge of its bin.

    Args:
        array: 1-D signal, typically decibels
        sd_count: Number of noise standard deviations added to the mode

    Returns:
        BackgroundNoise without a noise reduced signal
    """
    x = np.asarray(array, dtype=np.float64)
    bin_count = min(500, max(1, x.size // 4))
    histo, bin_width, lo, hi = histogram(x, bin_count)

    smoothing_window = 5 if bin_count > 250 else 3
    smooth = filter_moving_average(histo, smoothing_window)
    index_of_mode, index_of_one_sd = get_mode_and_one_standard_deviation(smooth)

    mode = lo + (index_of_mode + 1) * bin_width
    noise_sd = (index_of_mode - index_of_one_sd) * bin_width
    if index_of_mode == index_of_one_sd:
        noise_sd = bin_width

    threshold = mode + noise_sd * sd_count
    return BackgroundNoise(
        noise_mode=mode,
        noise_sd=noise_sd,
        noise_threshold=threshold,
        min_db=lo,
        max_db=hi,
        snr=hi - threshold,
    )


def get_mode_and_one_standard_deviation(
    histo: np.ndarray, upper_bound_fraction: float = FRACTIONAL_BOUND_FOR_MODE
) -> Tuple[int, int]:
    """
    Locate the mode of a histogram and the bin one standard deviation below it.

    The mode is capped at ``int(len(histo) * upper_bound_fraction)``. The
    one-sd bin is found by walking down from the mode until the accumulated
    count exceeds 68% of the area at and below the mode.

    Returns:
        Tuple of (index_of_mode, index_of_one_sd)
    """
    h = np.asarray(histo, dtype=np.float64)
    upper_bound = int(h.size * upper_bound_fraction)
    index_of_mode = min(get_max_index(h), upper_bound)

    threshold_sum = h[: index_of_mode + 1].sum() * 0.68
    index_of_one_sd = index_of_mode
    partial = 0.0
    for i in range(index_of_mode, 0, -1):
        partial += h[i]
        index_of_one_sd = i
        if partial > threshold_sum:
            break
    return index_of_mode, index_of_one_sd


def subtract_and_truncate_to_zero(array: np.ndarray, threshold: float) -> np.ndarray:
    return np.maximum(np.asarray(array, dtype=np.float64) - threshold, 0.0)


def truncate_negative_values_to_zero(array: np.ndarray) -> np.ndarray:
    return np.maximum(np.asarray(array, dtype=np.float64), 0.0)


# =============================================================================
# Spectrogram noise reduction
# =============================================================================


def noise_reduce(
    matrix: np.ndarray, nrt: Union[NoiseReductionType, str], parameter: float
) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Apply one of the noise reduction methods to a spectrogram.

    The meaning of ``parameter`` depends on the method:

    - STANDARD, BINARY, MEAN, MEDIAN: neighbourhood background threshold (dB)
    - MODAL, FLATTEN_AND_TRIM: noise standard deviation count
    - LOWEST_PERCENTILE, SHORT_RECORDING, BRIGGS_PERCENTILE: percentile
    - FIXED_DYNAMIC_RANGE: dynamic range in dB (typically 50)

    Args:
        matrix: Spectrogram (frames x bins), decibels except for Briggs
        nrt: Noise reduction type or its name
        parameter: Method parameter, see above

    Returns:
        Tuple of (noise reduced matrix, smoothed noise profile). The profile
        is None for methods that do not produce one.
    """
    if isinstance(nrt, str):
        nrt = key_to_noise_reduction_type(nrt)

    from ecoaudio.core.dsp import noise_profile as profiles

    m = np.asarray(matrix, dtype=np.float64)
    bg_profile = None

    if nrt is NoiseReductionType.STANDARD:
        profile = profiles.calculate_modal_noise_profile(m, DEFAULT_STDDEV_COUNT)
        bg_profile = filter_moving_average(profile.noise_thresholds, 5)
        m = noise_reduce_standard(m, bg_profile, parameter)
    elif nrt is NoiseReductionType.MODAL:
        profile = profiles.calculate_modal_noise_profile(m, parameter)
        bg_profile = filter_moving_average(profile.noise_thresholds, 5)
        m = truncate_bg_noise_from_spectrogram(m, bg_profile)
    elif nrt is NoiseReductionType.MEAN:
        m = noise_reduce_mean(m, parameter)
    elif nrt is NoiseReductionType.MEDIAN:
        m = noise_reduce_median(m, parameter)
    elif nrt is NoiseReductionType.LOWEST_PERCENTILE:
        bg_profile = profiles.get_noise_profile_from_lowest_percentile_frames(m, int(parameter))
        bg_profile = filter_moving_average(bg_profile, 5)
        m = truncate_bg_noise_from_spectrogram(m, bg_profile)
    elif nrt is NoiseReductionType.SHORT_RECORDING:
        bg_profile = profiles.get_noise_profile_bin_wise_from_lowest_percentile_cells(m, int(parameter))
        bg_profile = filter_moving_average(bg_profile, 5)
        m = truncate_bg_noise_from_spectrogram(m, bg_profile)
    elif nrt is NoiseReductionType.BRIGGS_PERCENTILE:
        # two passes
        m = profiles.briggs_noise_reduction_by_division_and_sqrt(m, int(parameter))
        m = profiles.briggs_noise_reduction_by_division_and_sqrt(m, int(parameter))
    elif nrt is NoiseReductionType.BINARY:
        profile = profiles.calculate_modal_noise_profile(m, DEFAULT_STDDEV_COUNT)
        bg_profile = filter_moving_average(profile.noise_thresholds, 7)
        m = noise_reduce_standard(m, bg_profile, parameter)
        m = matrix_to_binary(m, 2 * parameter)
    elif nrt is NoiseReductionType.FIXED_DYNAMIC_RANGE:
        logger.debug(f"Noise reduction: fixed dynamic range = {parameter}")
        m = noise_reduce_fixed_range(m, parameter, DEFAULT_STDDEV_COUNT)
    elif nrt is NoiseReductionType.FLATTEN_AND_TRIM:
        logger.debug(f"Noise reduction: flatten and trim, sd count = {parameter}")
        m = noise_reduce_flatten_and_trim(m, parameter)
    else:
        logger.debug("No noise reduction applied")

    return m, bg_profile


def noise_reduce_standard(
    matrix: np.ndarray,
    noise_profile: Optional[np.ndarray] = None,
    nh_background_threshold: float = DEFAULT_NH_BG_THRESHOLD,
) -> np.ndarray:
    """
    Subtract a noise profile, truncate at zero, then remove isolated low-level cells.

    When no profile is given the modal profile (sd count 0) smoothed with a
    width 7 window is used.
    """
    if noise_profile is None:
        from ecoaudio.core.dsp.noise_profile import calculate_modal_noise_profile

        profile = calculate_modal_noise_profile(matrix, DEFAULT_STDDEV_COUNT)
        noise_profile = filter_moving_average(profile.noise_thresholds, 7)

    m = truncate_bg_noise_from_spectrogram(matrix, noise_profile)
    return remove_neighbourhood_background_noise(m, nh_background_threshold)


def noise_reduce_fixed_range(matrix: np.ndarray, dynamic_range: float, sd_count: float) -> np.ndarray:
    from ecoaudio.core.dsp.noise_profile import calculate_modal_noise_profile

    profile = calculate_modal_noise_profile(matrix, sd_count)
    smoothed = filter_moving_average(profile.noise_thresholds, 7)
    m = subtract_bg_noise_from_spectrogram(matrix, smoothed)
    return set_dynamic_range(m, 0.0, dynamic_range)


def noise_reduce_flatten_and_trim(matrix: np.ndarray, sd_count: float) -> np.ndarray:
    """Modal noise removal followed by local 0-95 percentile range normalisation."""
    from ecoaudio.core.dsp.noise_profile import calculate_modal_noise_profile

    profile = calculate_modal_noise_profile(matrix, sd_count)
    smoothed = filter_moving_average(profile.noise_thresholds, 5)
    m = truncate_bg_noise_from_spectrogram(matrix, smoothed)
    return set_local_bounds(m, 0, 95, temporal_nh=5, freq_bin_nh=9)


def noise_reduce_mean(matrix: np.ndarray, nh_background_threshold: float) -> np.ndarray:
    from ecoaudio.core.dsp.noise_profile import calculate_mean_noise_profile

    profile = filter_moving_average(calculate_mean_noise_profile(matrix).noise_mean, 3)
    m = truncate_bg_noise_from_spectrogram(matrix, profile)
    return remove_neighbourhood_background_noise(m, nh_background_threshold)


def noise_reduce_median(matrix: np.ndarray, nh_background_threshold: float) -> np.ndarray:
    from ecoaudio.core.dsp.noise_profile import calculate_median_noise_profile

    profile = filter_moving_average(calculate_median_noise_profile(matrix).noise_median, 3)
    m = truncate_bg_noise_from_spectrogram(matrix, profile)
    return remove_neighbourhood_background_noise(m, nh_background_threshold)


def _check_profile(matrix: np.ndarray, noise_profile: np.ndarray) -> np.ndarray:
    profile = np.asarray(noise_profile, dtype=np.float64)
    if profile.shape != (matrix.shape[1],):
        raise ValueError(
            f"Noise profile length {profile.shape[0]} does not match bin count {matrix.shape[1]}"
        )
    return profile


def subtract_and_truncate_noise_profile(
    matrix: np.ndarray, noise_profile: np.ndarray, background_threshold: float
) -> np.ndarray:
    """Subtract the profile from every frame; results below ``background_threshold`` become 0."""
    m = np.asarray(matrix, dtype=np.float64)
    out = m - _check_profile(m, noise_profile)
    out[out < background_threshold] = 0.0
    return out


def truncate_bg_noise_from_spectrogram(matrix: np.ndarray, noise_profile: np.ndarray) -> np.ndarray:
    return subtract_and_truncate_noise_profile(matrix, noise_profile, 0.0)


def subtract_bg_noise_from_spectrogram(matrix: np.ndarray, noise_profile: np.ndarray) -> np.ndarray:
    m = np.asarray(matrix, dtype=np.float64)
    return m - _check_profile(m, noise_profile)


def set_dynamic_range(matrix: np.ndarray, min_db: float, max_db: float) -> np.ndarray:
    """Shift values so the maximum equals ``max_db``; values then below ``min_db`` become 0."""
    m = np.asarray(matrix, dtype=np.float64)
    out = m + (max_db - m.max())
    out[out < min_db] = 0.0
    return out


def set_local_bounds(
    matrix: np.ndarray,
    min_percentile_bound: int,
    max_percentile_bound: int,
    temporal_nh: int,
    freq_bin_nh: int,
) -> np.ndarray:
    """
    Replace each cell by the inter-percentile range of its neighbourhood.

    The neighbourhood is ``2 * temporal_nh + 1`` frames by
    ``2 * freq_bin_nh + 1`` bins, summarised by a 100 bin histogram. Cells
    whose neighbourhood would cross the matrix border are set to 0.
    """
    m = np.asarray(matrix, dtype=np.float64)
    rows, cols = m.shape
    out = np.zeros_like(m)
    for col in range(freq_bin_nh, cols - freq_bin_nh):
        for row in range(temporal_nh, rows - temporal_nh):
            local = m[row - temporal_nh : row + temporal_nh + 1, col - freq_bin_nh : col + freq_bin_nh + 1]
            histo, bin_width, _, _ = histogram(local, 100)
            lower = get_percentile_bin(histo, min_percentile_bound)
            upper = get_percentile_bin(histo, max_percentile_bound)
            out[row, col] = (upper - lower) * bin_width
    return out


def remove_neighbourhood_background_noise(matrix: np.ndarray, nh_threshold: float) -> np.ndarray:
    """
    Suppress cells whose local neighbourhood is quiet.

    The neighbourhood is 3 frames by 9 bins, truncated at the matrix edges.
    Cells whose neighbourhood mean is below ``matrix.min() + nh_threshold``
    are set to the matrix minimum. Thresholds below 1e-6 disable the step.
    """
    m = np.asarray(matrix, dtype=np.float64)
    if nh_threshold < 0.000001:
        return m

    size = (3, 9)
    min_value = float(m.min())
    threshold = nh_threshold + min_value

    sums = ndimage.correlate(m, np.ones(size), mode="constant", cval=0.0)
    counts = ndimage.correlate(np.ones_like(m), np.ones(size), mode="constant", cval=0.0)
    local_mean = sums / counts
    return np.where(local_mean < threshold, min_value, m)


# =============================================================================
# Frame-level SNR
# =============================================================================


class SNR:
    """
    Frame decibels of a signal with the modal background removed.

    Construct with ``SNR(signal, frame_ids)`` for a waveform plus frame
    boundaries, or ``SNR.from_frames(frames)`` for pre-cut frames.

    Attributes:
        frame_decibels: Frame decibels after background removal
        fraction_of_high_energy_frames: Fraction of frames above -10 dB
            before background removal
        min_db: Minimum frame decibels before removal
        max_db: Maximum frame decibels before removal
        noise_subtracted: Modal noise level (Q) that was subtracted
        snr: ``max_db`` minus the noise threshold
        noise_range: ``min_db - noise_subtracted``
        max_reference_decibels_wrt_noise: ``max_db - min_db``
        modal_noise_profile: Spectrogram noise profile, set by the sonogram
            that owns this instance
    """

    def __init__(self, signal: np.ndarray, frame_ids: Optional[np.ndarray] = None) -> None:
        log_energy = calculate_log_energy_of_signal_frames(signal, frame_ids)
        self.frame_decibels = convert_log_energy_to_decibels(log_energy)
        self.modal_noise_profile: Optional[np.ndarray] = None
        self.min_db = 0.0
        self.max_db = 0.0
        self.noise_subtracted = 0.0
        self.snr = 0.0

        above = np.count_nonzero(self.frame_decibels > HIGH_ENERGY_THRESHOLD_DB)
        self.fraction_of_high_energy_frames = above / self.frame_decibels.size if self.frame_decibels.size else 0.0

        self.subtract_background_noise_db()
        self.noise_range = self.min_db - self.noise_subtracted
        self.max_reference_decibels_wrt_noise = self.max_db - self.min_db

    @classmethod
    def from_frames(cls, frames: np.ndarray) -> "SNR":
        return cls(frames)

    def subtract_background_noise_db(self) -> None:
        bgn = subtract_background_noise_from_waveform_db(self.frame_decibels, DEFAULT_STDDEV_COUNT)
        self.frame_decibels = bgn.noise_reduced_signal
        self.noise_subtracted = bgn.noise_mode
        self.min_db = bgn.min_db
        self.max_db = bgn.max_db
        self.snr = bgn.snr

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fraction_of_high_energy_frames": self.fraction_of_high_energy_frames,
            "min_db": self.min_db,
            "max_db": self.max_db,
            "noise_subtracted": self.noise_subtracted,
            "snr": self.snr,
            "noise_range": self.noise_range,
            "max_reference_decibels_wrt_noise": self.max_reference_decibels_wrt_noise,
        }
