"""
Cepstral spectrograms.

A cepstrogram reduces each amplitude spectrum to a short vector of cepstral
coefficients: filter bank, decibels, noise reduction, DCT, normalisation,
then optional frame energy and delta features.
"""

import logging
from typing import Optional, Tuple

import librosa
import numpy as np
from scipy.fft import dct

from ecoaudio.core.audio import AudioRecording
from ecoaudio.core.dsp.snr import noise_reduce
from ecoaudio.core.matrix import normalise
from ecoaudio.core.spectrogram.config import SonogramConfig
from ecoaudio.core.spectrogram.sonogram import AmplitudeSonogram, BaseSonogram, SpectrogramStandard, decibel_spectra

logger = logging.getLogger(__name__)


def _band_count(band_count: int, nyquist: int, min_hz: float, max_hz: float) -> int:
    # the filter count is given for the full 0-Nyquist band and trimmed proportionately
    return max(1, int(round(band_count * (max_hz - min_hz) / nyquist)))


def mel_filter_bank(
    amplitude: np.ndarray, band_count: int, sample_rate: int, min_hz: float, max_hz: float
) -> np.ndarray:
    """Project amplitude spectra onto triangular mel filters."""
    n_fft = 2 * (amplitude.shape[1] - 1)
    n_mels = _band_count(band_count, sample_rate // 2, min_hz, max_hz)
    weights = librosa.filters.mel(sr=sample_rate, n_fft=n_fft, n_mels=n_mels, fmin=min_hz, fmax=max_hz, norm=None)
    return amplitude @ weights.T


def linear_filter_bank(
    amplitude: np.ndarray, band_count: int, sample_rate: int, min_hz: float, max_hz: float
) -> np.ndarray:
    """Average amplitude spectra over equal-width frequency bands."""
    nyquist = sample_rate // 2
    bin_count = amplitude.shape[1]
    bin_width = nyquist / (bin_count - 1)
    n_bands = _band_count(band_count, nyquist, min_hz, max_hz)

    edges = np.linspace(min_hz, max_hz, n_bands + 1) / bin_width
    out = np.empty((amplitude.shape[0], n_bands))
    for i in range(n_bands):
        lo = int(np.floor(edges[i]))
        hi = max(lo + 1, int(np.ceil(edges[i + 1])))
        out[:, i] = amplitude[:, lo : min(hi, bin_count)].mean(axis=1)
    return out


def cepstra(matrix: np.ndarray, cc_count: int) -> np.ndarray:
    """First ``cc_count`` DCT-II coefficients of each frame (C0 excluded)."""
    coefficients = dct(np.asarray(matrix, dtype=np.float64), type=2, norm="ortho", axis=1)
    return coefficients[:, 1 : cc_count + 1]


def _deltas(m: np.ndarray) -> np.ndarray:
    if m.shape[0] < 2:
        return np.zeros_like(m)
    return np.gradient(m, axis=0)


def acoustic_vectors(
    matrix: np.ndarray, decibels: np.ndarray, include_delta: bool, include_double_delta: bool
) -> np.ndarray:
    """
    Frame decibels and cepstra, followed by their deltas and double deltas.

    Each block has ``cc_count + 1`` columns: normalised frame decibels first,
    then the cepstral coefficients.
    """
    base = np.column_stack((np.asarray(decibels, dtype=np.float64), matrix))
    blocks = [base]
    delta = _deltas(base)
    if include_delta:
        blocks.append(delta)
    if include_double_delta:
        blocks.append(_deltas(delta))
    return np.hstack(blocks)


def make_cepstrogram(
    config: SonogramConfig,
    amplitude: np.ndarray,
    decibels: np.ndarray,
    sample_rate: int,
    win_power: float,
) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Convert an amplitude matrix to a matrix of acoustic vectors.

    Args:
        config: Spectrogram configuration (filter bank, noise reduction, MFCC)
        amplitude: FFT magnitudes (frames x bins)
        decibels: Normalised frame decibels
        sample_rate: Sample rate of the source recording
        win_power: Mean squared window coefficient

    Returns:
        Tuple of (acoustic vectors, full bandwidth noise profile or None)

    Raises:
        ValueError: If the filter bank has more bands than there are FFT bins
    """
    nyquist = sample_rate // 2
    mfcc = config.mfcc_config
    fft_bin_count = amplitude.shape[1]
    if mfcc.filterbank_count > fft_bin_count:
        raise ValueError(
            f"Cannot calculate cepstral coefficients: filter bank count exceeds FFT bin count "
            f"({mfcc.filterbank_count} > {fft_bin_count})"
        )

    min_hz = config.min_freq_band or 0
    max_hz = config.max_freq_band or nyquist
    logger.debug(f"Filter bank input dimension = {fft_bin_count}")
    if config.do_mel_scale:
        m = mel_filter_bank(amplitude, mfcc.filterbank_count, sample_rate, min_hz, max_hz)
    else:
        m = linear_filter_bank(amplitude, mfcc.filterbank_count, sample_rate, min_hz, max_hz)
    logger.debug(f"Dimension after filter bank = {m.shape[1]} (max {mfcc.filterbank_count})")

    m = decibel_spectra(m, win_power, sample_rate, config.epsilon)
    m, profile = noise_reduce(m, config.noise_reduction_type, config.noise_reduction_parameter)

    cc_count = min(mfcc.cc_count, m.shape[1] - 1)
    if cc_count < 1:
        raise ValueError(f"Filter bank produced {m.shape[1]} band(s); at least 2 are needed for cepstra")
    m = normalise(cepstra(m, cc_count))
    m = acoustic_vectors(m, decibels, mfcc.include_delta, mfcc.include_double_delta)
    return m, profile


class SpectrogramCepstral(BaseSonogram):
    """Spectrogram of cepstral acoustic vectors."""

    def make(self, amplitude: np.ndarray) -> None:
        m, profile = make_cepstrogram(
            self.config, amplitude, self.decibels_normalised, self.sample_rate, self.window_power
        )
        self.modal_noise_profile = profile
        self.replace_data(m, "cepstral")

    @classmethod
    def from_amplitude(
        cls, sonogram: AmplitudeSonogram, min_hz: Optional[int] = None, max_hz: Optional[int] = None
    ) -> "SpectrogramCepstral":
        """Cepstrogram of an existing amplitude sonogram, optionally restricted to a band."""
        result = cls(sonogram.config)
        result._copy_state(sonogram)
        if min_hz is not None or max_hz is not None:
            result.config = SonogramConfig.from_dict(
                {**sonogram.config.to_dict(), "min_freq_band": min_hz, "max_freq_band": max_hz}
            )
        result.make(sonogram.data)
        return result


class TriAvSonogram(SpectrogramCepstral):
    """
    Cepstrogram whose rows concatenate the vectors at T - dT, T and T + dT.

    The first and last ``delta_t`` rows have no complete context and are zero.
    """

    def make(self, amplitude: np.ndarray) -> None:
        m, profile = make_cepstrogram(
            self.config, amplitude, self.decibels_normalised, self.sample_rate, self.window_power
        )
        self.modal_noise_profile = profile
        self.replace_data(tri_av_vectors(m, self.config.delta_t), "tri_av")


def tri_av_vectors(matrix: np.ndarray, delta_t: int) -> np.ndarray:
    m = np.asarray(matrix, dtype=np.float64)
    frames, width = m.shape
    out = np.zeros((frames, 3 * width))
    if frames > 2 * delta_t:
        body = slice(delta_t, frames - delta_t)
        out[body, :width] = m[: frames - 2 * delta_t]
        out[body, width : 2 * width] = m[body]
        out[body, 2 * width :] = m[2 * delta_t :]
    return out


def get_all_sonograms(
    recording: AudioRecording, config: SonogramConfig, min_hz: int, max_hz: int
) -> Tuple[SpectrogramStandard, SpectrogramCepstral, Optional[np.ndarray], Optional[np.ndarray]]:
    """
    Decibel spectrogram and band-limited cepstrogram of one recording.

    Returns:
        Tuple of (standard spectrogram, cepstrogram, full noise profile,
        noise profile restricted to the band)
    """
    amplitude = AmplitudeSonogram(config, recording)
    sonogram = SpectrogramStandard.from_amplitude(amplitude)
    logger.info(
        f"Signal: duration={sonogram.duration:.2f}s, sample rate={sonogram.sample_rate}; "
        f"frames: count={sonogram.frame_count}, frames/s={sonogram.frames_per_second:.1f}"
    )

    modal_noise = sonogram.modal_noise_profile
    noise_subband = None
    if modal_noise is not None:
        lo, hi = sonogram.get_frequency_bounds(min_hz, max_hz)
        noise_subband = modal_noise[lo : hi + 1]

    cepstrogram = SpectrogramCepstral.from_amplitude(amplitude, min_hz, max_hz)
    return sonogram, cepstrogram, modal_noise, noise_subband
