"""
Spectrograms
============

The sonogram family turns an :class:`~ecoaudio.core.audio.AudioRecording`
into a frames x frequency-bins matrix.

- ``AmplitudeSonogram``: FFT magnitudes of windowed frames
- ``SpectrogramStandard``: decibel spectrogram with configurable noise reduction

Every sonogram owns exactly one matrix, ``data``. Transform stages replace
it through :meth:`BaseSonogram.replace_data`; nothing is appended.

Example:
    >>> from ecoaudio.core.audio import AudioRecording
    >>> from ecoaudio.core.spectrogram import SonogramConfig, SpectrogramStandard
    >>> recording = AudioRecording.from_file("frog_chorus.wav")
    >>> config = SonogramConfig(window_size=512, noise_reduction_type="standard",
    ...                         noise_reduction_parameter=2.0)
    >>> sonogram = SpectrogramStandard(config, recording)
    >>> sonogram.data.shape
    (3445, 257)
"""

import logging
from typing import List, Optional, Tuple

import numpy as np
from scipy import signal as scipy_signal

from ecoaudio.core.audio import AudioRecording
from ecoaudio.core.dsp.snr import SNR, normalise_decibel_array_zero_one, noise_reduce
from ecoaudio.core.spectrogram.config import SonogramConfig

logger = logging.getLogger(__name__)

_WINDOW_NAMES = {
    "hamming": "hamming",
    "hann": "hann",
    "hanning": "hann",
    "blackman": "blackman",
    "rectangular": "boxcar",
    "boxcar": "boxcar",
}


# =============================================================================
# Framing
# =============================================================================


def frame_ids(sample_count: int, window_size: int, step: int) -> np.ndarray:
    """
    Inclusive ``[start, end]`` sample indices of each full frame.

    Raises:
        ValueError: If the signal is shorter than one window
    """
    if sample_count < window_size:
        raise ValueError(f"Signal of {sample_count} samples is shorter than one window ({window_size})")
    count = 1 + (sample_count - window_size) // step
    starts = np.arange(count, dtype=np.int64) * step
    return np.column_stack((starts, starts + window_size - 1))


def get_frames(samples: np.ndarray, window_size: int, step: int) -> np.ndarray:
    """Cut a waveform into overlapping frames (frames x window_size)."""
    ids = frame_ids(len(samples), window_size, step)
    return np.asarray(samples, dtype=np.float64)[ids[:, :1] + np.arange(window_size)]


def get_window(name: str, size: int) -> np.ndarray:
    try:
        scipy_name = _WINDOW_NAMES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown window function: {name}") from None
    return scipy_signal.get_window(scipy_name, size, fftbins=False)


def window_power(window: np.ndarray) -> float:
    """Mean squared window coefficient, used to scale frame power."""
    return float(np.sum(window * window) / window.size)


def amplitude_spectra(frames: np.ndarray, window: np.ndarray) -> np.ndarray:
    """Magnitude of the real FFT of each windowed frame, DC bin included."""
    return np.abs(np.fft.rfft(frames * window, axis=1))


def decibel_spectra(
    amplitude: np.ndarray, win_power: float, sample_rate: int, epsilon: float
) -> np.ndarray:
    """
    Convert amplitude spectra to power decibels.

    Power is scaled by window power and sample rate; interior bins are
    doubled to account for the discarded negative frequencies. Power is
    floored at the level of a one-quantisation-step signal.
    """
    m = np.asarray(amplitude, dtype=np.float64)
    scale = win_power * sample_rate
    power = (m * m) / scale
    if power.shape[1] > 2:
        power[:, 1:-1] *= 2.0
    floor = (epsilon * epsilon) / scale
    return 10.0 * np.log10(np.maximum(power, floor))


# =============================================================================
# Sonograms
# =============================================================================


class BaseSonogram:
    """
    Common framing, energy and bookkeeping for all spectrograms.

    Subclasses implement :meth:`make`, which receives the amplitude matrix
    and sets ``data``.

    Attributes:
        config: SonogramConfig used to build the sonogram
        sample_rate: Samples per second of the source recording
        duration: Recording duration in seconds
        frame_count: Number of frames
        data: The spectrogram matrix (frames x bins)
        snr_data: Frame-level SNR of the source frames
        decibels_per_frame: Frame decibels with background removed
        decibels_normalised: ``decibels_per_frame`` mapped to [0, 1]
        modal_noise_profile: Noise profile used by noise reduction, if any
        max_amplitude: Largest absolute sample value
        history: Names of the transform stages applied to ``data``
    """

    def __init__(self, config: SonogramConfig, recording: Optional[AudioRecording] = None) -> None:
        self.config = config
        self.data: np.ndarray = np.empty((0, 0))
        self.modal_noise_profile: Optional[np.ndarray] = None
        self.history: List[str] = []

        if recording is None:
            return

        self.sample_rate = recording.sample_rate
        self.duration = recording.duration
        self.max_amplitude = float(np.max(np.abs(recording.samples))) if recording.sample_count else 0.0

        window = get_window(config.window_function, config.window_size)
        self.window_power = window_power(window)
        frames = get_frames(recording.samples, config.window_size, config.window_step)
        self.frame_count = frames.shape[0]

        self.snr_data = SNR.from_frames(frames)
        self.decibels_per_frame = self.snr_data.frame_decibels
        self.decibels_normalised = normalise_decibel_array_zero_one(
            self.decibels_per_frame, self.snr_data.max_reference_decibels_wrt_noise or 1.0
        )

        logger.debug(
            f"Framed {config.source_name or 'recording'}: {self.frame_count} frames of {config.window_size} "
            f"samples, step {config.window_step}"
        )
        self.make(amplitude_spectra(frames, window))

    def _copy_state(self, other: "BaseSonogram") -> None:
        for name in (
            "sample_rate",
            "duration",
            "max_amplitude",
            "window_power",
            "frame_count",
            "snr_data",
            "decibels_per_frame",
            "decibels_normalised",
        ):
            setattr(self, name, getattr(other, name))

    def make(self, amplitude: np.ndarray) -> None:
        raise NotImplementedError

    def replace_data(self, matrix: np.ndarray, stage: str) -> None:
        """Replace the owned matrix with the output of a transform stage."""
        self.data = np.asarray(matrix, dtype=np.float64)
        self.history.append(stage)

    # ---- derived properties -------------------------------------------------

    @property
    def nyquist(self) -> int:
        return self.sample_rate // 2

    @property
    def frame_duration(self) -> float:
        """Duration of one frame in seconds."""
        return self.config.window_size / self.sample_rate

    @property
    def frame_step_duration(self) -> float:
        """Seconds between the starts of consecutive frames."""
        return self.config.window_step / self.sample_rate

    @property
    def frame_step(self) -> float:
        """Alias of :attr:`frame_step_duration`."""
        return self.frame_step_duration

    @property
    def decibels(self) -> np.ndarray:
        """Alias of :attr:`decibels_per_frame`."""
        return self.decibels_per_frame

    @property
    def frames_per_second(self) -> float:
        return self.sample_rate / self.config.window_step

    @property
    def fbin_width(self) -> float:
        """Width of one FFT bin in Hz."""
        return self.sample_rate / self.config.window_size

    def frequency_bin_for_hz(self, hz: float) -> int:
        return int(round(hz / self.fbin_width))

    def frame_times(self) -> np.ndarray:
        """Start time in seconds of each frame."""
        return np.arange(self.frame_count) * self.frame_step_duration

    def get_frequency_bounds(self, min_hz: float, max_hz: float) -> Tuple[int, int]:
        """
        Inclusive bin bounds of a frequency band, clipped to the matrix.

        Raises:
            ValueError: If ``min_hz`` is not below ``max_hz``
        """
        if min_hz >= max_hz:
            raise ValueError(f"min_hz ({min_hz}) must be below max_hz ({max_hz})")
        lo = max(0, self.frequency_bin_for_hz(min_hz))
        hi = min(self.data.shape[1] - 1, self.frequency_bin_for_hz(max_hz))
        return lo, hi

    def get_subband(self, min_hz: float, max_hz: float) -> np.ndarray:
        lo, hi = self.get_frequency_bounds(min_hz, max_hz)
        return self.data[:, lo : hi + 1].copy()


class AmplitudeSonogram(BaseSonogram):
    """FFT magnitude spectrogram."""

    def make(self, amplitude: np.ndarray) -> None:
        self.replace_data(amplitude, "amplitude")


class SpectrogramStandard(BaseSonogram):
    """
    Decibel spectrogram with the configured noise reduction applied.

    Build from a recording, or from an existing amplitude sonogram with
    :meth:`from_amplitude` to avoid re-framing the signal.
    """

    def make(self, amplitude: np.ndarray) -> None:
        db = decibel_spectra(amplitude, self.window_power, self.sample_rate, self.config.epsilon)
        self.replace_data(db, "decibels")

        reduced, profile = noise_reduce(
            self.data, self.config.noise_reduction_type, self.config.noise_reduction_parameter
        )
        self.modal_noise_profile = profile
        self.snr_data.modal_noise_profile = profile
        self.replace_data(reduced, f"noise_reduced:{self.config.noise_reduction_type.value}")

    @classmethod
    def from_amplitude(cls, sonogram: AmplitudeSonogram) -> "SpectrogramStandard":
        result = cls(sonogram.config)
        result._copy_state(sonogram)
        result.make(sonogram.data)
        return result
