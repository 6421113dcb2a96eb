"""
Oscillation Detection
=====================

Frequency-by-oscillation-rate matrices for an amplitude spectrogram.

The intensity envelope of every frequency bin (averaged with its two
neighbours) is cut into samples of ``sample_length`` frames. Each sample is
autocorrelated; the autocorrelations are then reduced to an oscillation
spectrum either directly by FFT or through the dominant singular vectors of
the sample-by-lag matrix. A bin's spectrum has one cell per oscillation
rate, ``frames_per_second / sample_length`` Hz apart.

Example:
    >>> from ecoaudio.core.audio import AudioRecording
    >>> from ecoaudio.core.analysis.oscillations import generate_oscillation_data
    >>> result = generate_oscillation_data(AudioRecording.from_file("frogs.wav"))
    >>> result.spectral_index.shape
    (256,)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import numpy as np
from scipy import ndimage
from scipy import signal as scipy_signal

from ecoaudio.core.audio import AudioRecording
from ecoaudio.core.exceptions import NotSupportedError
from ecoaudio.core.matrix import difference_from_mean, submatrix, z_scores
from ecoaudio.core.spectrogram import AmplitudeSonogram, SonogramConfig

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_LENGTH = 128
DEFAULT_SENSITIVITY_THRESHOLD = 0.3
# shortest sample whose spectrum keeps a bin after DC and Nyquist are dropped
MIN_SAMPLE_LENGTH = 4

LCN_NEIGHBOURHOOD_SECONDS = 0.25
LCN_CONTRAST_LEVEL = 0.5
SVD_ENERGY_FRACTION = 0.9


class OscillationAlgorithm(Enum):
    AUTOCORR_SVD_FFT = "Autocorr-SVD-FFT"
    AUTOCORR_FFT = "Autocorr-FFT"
    AUTOCORR_WPD = "Autocorr-WPD"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


@dataclass
class OscillationsResult:
    """
    Attributes:
        source_name: Recording the matrix was computed from
        algorithm: Algorithm used
        sample_length: Frames per autocorrelation sample
        frames_per_second: Frame rate of the spectrogram
        freq_oscillation_data: Oscillation rates x frequency bins
        spectral_index: Oscillation spectral index, one value per frequency bin
    """

    source_name: Optional[str]
    algorithm: OscillationAlgorithm
    sample_length: int
    frames_per_second: float
    freq_oscillation_data: np.ndarray
    spectral_index: np.ndarray

    @property
    def oscillation_bin_width(self) -> float:
        """Oscillation rate (Hz) between rows of the matrix."""
        return self.frames_per_second / self.sample_length

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_name": self.source_name,
            "algorithm": self.algorithm.value,
            "sample_length": self.sample_length,
            "oscillation_bin_width": self.oscillation_bin_width,
            "spectral_index": self.spectral_index.tolist(),
        }


def _autocorrelation(x: np.ndarray) -> np.ndarray:
    # unbiased: each lag is averaged over the pairs it covers
    n = x.size
    full = np.correlate(x, x, mode="full")[n - 1 :]
    return full / (n - np.arange(n))


def get_xcorr_by_time_matrix(signal: np.ndarray, sample_length: int) -> np.ndarray:
    """
    Autocorrelation of each consecutive sample of a z-scored signal.

    Returns:
        Matrix of lags x samples; trailing frames that do not fill a sample
        are ignored
    """
    s = z_scores(signal)
    sample_count = s.size // sample_length
    out = np.zeros((sample_length, sample_count))
    for i in range(sample_count):
        out[:, i] = _autocorrelation(s[i * sample_length : (i + 1) * sample_length])
    return out


def _peak_power(autocor: np.ndarray):
    """Power spectrum of an autocorrelation and the power around its peak."""
    x = difference_from_mean(autocor)
    window = scipy_signal.get_window("hamming", x.size, fftbins=False)
    spectrum = np.abs(np.fft.rfft(x * window))
    # drop DC and the top bin
    spectrum = spectrum[1:-1].copy()
    spectrum[0] *= 0.66
    power = spectrum * spectrum

    idx = int(np.argmax(power))
    at_max = power[idx]
    at_max += power[idx] if idx == 0 else power[idx - 1]
    at_max += power[idx] if idx >= power.size - 1 else power[idx + 1]
    return power, idx, at_max


def _check_sample_length(sample_length: int) -> None:
    if sample_length < MIN_SAMPLE_LENGTH:
        raise ValueError(f"sample_length must be at least {MIN_SAMPLE_LENGTH} frames, got {sample_length}")


def _log_compress(vector: np.ndarray) -> np.ndarray:
    return np.where(vector < 1.0, 0.0, np.log10(1.0 + np.maximum(vector, 0.0)))


def get_oscillation_array_using_svd_and_fft(xcorr_by_time: np.ndarray, sensitivity: float) -> np.ndarray:
    """
    Oscillation spectrum from the singular vectors holding 90% of the energy.
    """
    lags, samples = xcorr_by_time.shape
    vector = np.zeros(lags // 2)
    if samples == 0:
        return vector

    u, singular_values, _ = np.linalg.svd(xcorr_by_time, full_matrices=False)
    energy = singular_values * singular_values
    total = energy.sum()
    if total == 0:
        return vector
    fractions = np.cumsum(energy) / total
    significant = np.nonzero(fractions > SVD_ENERGY_FRACTION)[0]
    count = int(significant[0]) + 1 if significant.size else 0

    for e in range(count):
        autocor = u[:, e].copy()
        if autocor[0] < 0:
            autocor = -autocor
        power, idx, at_max = _peak_power(autocor)
        total_power = power.sum()
        if total_power > 0 and at_max / total_power > sensitivity and idx < vector.size:
            vector[idx] += at_max

    return _log_compress(vector)


def get_oscillation_array_using_fft(xcorr_by_time: np.ndarray, sensitivity: float) -> np.ndarray:
    """Oscillation spectrum averaged over the FFTs of every sample's autocorrelation."""
    lags, samples = xcorr_by_time.shape
    vector = np.zeros(lags // 2)
    if samples == 0:
        return vector

    for e in range(samples):
        power, idx, at_max = _peak_power(xcorr_by_time[:, e])
        total_power = power.sum()
        if total_power > 0 and at_max / total_power > sensitivity and idx < vector.size:
            vector[idx] += at_max

    return _log_compress(vector / samples)


def get_frequency_by_oscillations_matrix(
    m: np.ndarray,
    sensitivity: float = DEFAULT_SENSITIVITY_THRESHOLD,
    sample_length: int = DEFAULT_SAMPLE_LENGTH,
    algorithm: Union[OscillationAlgorithm, str] = OscillationAlgorithm.AUTOCORR_SVD_FFT,
) -> np.ndarray:
    """
    Oscillation spectrum of every frequency bin.

    Args:
        m: Amplitude spectrogram (frames x bins), at least 3 bins wide
        sensitivity: Minimum fraction of spectral power around the peak
        sample_length: Frames per autocorrelation sample
        algorithm: Oscillation algorithm

    Returns:
        Matrix of oscillation rates (``sample_length // 2``) x bins

    Raises:
        NotSupportedError: For the wavelet packet algorithm
        ValueError: If ``sample_length`` is below :data:`MIN_SAMPLE_LENGTH`
    """
    algorithm = OscillationAlgorithm(algorithm)
    _check_sample_length(sample_length)
    if algorithm is OscillationAlgorithm.AUTOCORR_WPD:
        raise NotSupportedError("Wavelet packet oscillation spectra are not implemented", operation=algorithm.value)

    frames, bins = m.shape
    if bins < 3:
        raise ValueError(f"Need at least 3 frequency bins, got {bins}")

    out = np.zeros((sample_length // 2, bins))
    for b in range(bins):
        lo = min(max(b - 1, 0), bins - 3)
        envelope = submatrix(m, 0, lo, frames - 1, lo + 2).mean(axis=1)
        xcorr = get_xcorr_by_time_matrix(envelope, sample_length)
        if algorithm is OscillationAlgorithm.AUTOCORR_SVD_FFT:
            out[:, b] = get_oscillation_array_using_svd_and_fft(xcorr, sensitivity)
        else:
            out[:, b] = get_oscillation_array_using_fft(xcorr, sensitivity)
    return out


def get_spectral_index_oscillations(freq_oscillation_matrix: np.ndarray) -> np.ndarray:
    """Column sums of the matrix, excluding the lowest oscillation rate."""
    return np.asarray(freq_oscillation_matrix)[1:].sum(axis=0)


def filter_with_local_column_variance(m: np.ndarray, neighbourhood: int, contrast_level: float) -> np.ndarray:
    """Local contrast normalisation: divide each cell by its local temporal standard deviation plus a floor."""
    x = np.asarray(m, dtype=np.float64)
    size = max(1, neighbourhood)
    mean = ndimage.uniform_filter1d(x, size, axis=0, mode="nearest")
    mean_sq = ndimage.uniform_filter1d(x * x, size, axis=0, mode="nearest")
    sd = np.sqrt(np.maximum(mean_sq - mean * mean, 0.0))
    return x / (sd + contrast_level)


def get_vector_of_dynamic_ranges(signal: np.ndarray, sample_length: int) -> np.ndarray:
    s = np.asarray(signal, dtype=np.float64)
    count = s.size // sample_length
    samples = s[: count * sample_length].reshape(count, sample_length)
    return samples.max(axis=1) - samples.min(axis=1) if count else np.zeros(0)


def generate_oscillation_data(
    recording: AudioRecording,
    sensitivity: float = DEFAULT_SENSITIVITY_THRESHOLD,
    sample_length: int = DEFAULT_SAMPLE_LENGTH,
    window_size: int = 512,
    algorithm: Union[OscillationAlgorithm, str] = OscillationAlgorithm.AUTOCORR_SVD_FFT,
) -> OscillationsResult:
    """
    Frequency-by-oscillation matrix and spectral index of a recording.

    The DC bin is dropped and the amplitude spectrogram is contrast
    normalised over 0.25 s neighbourhoods before oscillations are measured.
    """
    algorithm = OscillationAlgorithm(algorithm)
    _check_sample_length(sample_length)
    config = SonogramConfig(window_size=window_size, window_overlap=0.0)
    sonogram = AmplitudeSonogram(config, recording)
    data = sonogram.data[:, 1 : config.freq_bin_count + 1]

    neighbourhood = int(sonogram.frames_per_second * LCN_NEIGHBOURHOOD_SECONDS)
    logger.debug(f"LCN: {sonogram.frames_per_second:.1f} frames/s, neighbourhood {neighbourhood} frames")
    data = filter_with_local_column_variance(data, neighbourhood, LCN_CONTRAST_LEVEL)

    matrix = get_frequency_by_oscillations_matrix(data, sensitivity, sample_length, algorithm)
    return OscillationsResult(
        source_name=recording.source_path,
        algorithm=algorithm,
        sample_length=sample_length,
        frames_per_second=sonogram.frames_per_second,
        freq_oscillation_data=matrix,
        spectral_index=get_spectral_index_oscillations(matrix),
    )
