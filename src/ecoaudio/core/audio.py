"""
Audio Recordings
================

Decoded mono waveforms and the loader used by every analysis.

WAV, FLAC and OGG files are read with soundfile; other formats (MP3, WV,
WMA, ...) are decoded by librosa, which delegates to its audioread backend.

Example:
    >>> from ecoaudio.core.audio import AudioRecording
    >>> recording = AudioRecording.from_file("dawn_chorus.wav")
    >>> recording.duration
    60.0
    >>> first_ten = recording.get_subsegment(0.0, 10.0)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import librosa
import numpy as np
import soundfile as sf

from ecoaudio.core.exceptions import AudioLoadError

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {".wav", ".mp3", ".wv", ".ogg", ".wma", ".flac"}
_SOUNDFILE_EXTENSIONS = {".wav", ".flac", ".ogg"}


def load_audio(filepath: Union[str, Path], target_sr: Optional[int] = None) -> Tuple[np.ndarray, int]:
    """
    Load an audio file as mono float samples in [-1.0, 1.0].

    Args:
        filepath: Path to audio file
        target_sr: Resample to this rate when given

    Returns:
        Tuple of (samples, sample_rate)

    Raises:
        FileNotFoundError: If the file doesn't exist
        AudioLoadError: If the file cannot be decoded
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {filepath}")

    ext = path.suffix.lower()
    try:
        if ext in _SOUNDFILE_EXTENSIONS:
            samples, sample_rate = sf.read(str(path), dtype="float32", always_2d=False)
            if samples.ndim > 1:
                samples = samples.mean(axis=1)
            logger.debug(f"Loaded {path.name} via soundfile ({sample_rate}Hz, {len(samples)} samples)")
        else:
            samples, sample_rate = librosa.load(str(path), sr=None, mono=True)
            logger.debug(f"Loaded {path.name} via librosa ({sample_rate}Hz, {len(samples)} samples)")
    except (RuntimeError, OSError, ValueError, EOFError) as e:
        raise AudioLoadError(f"Error opening '{path.name}': {e}", path=str(path)) from e

    if target_sr is not None and target_sr != sample_rate:
        samples = librosa.resample(samples, orig_sr=sample_rate, target_sr=target_sr)
        sample_rate = target_sr

    return np.asarray(samples, dtype=np.float64), int(sample_rate)


@dataclass
class AudioRecording:
    """
    A decoded mono waveform.

    Attributes:
        samples: Float samples in [-1.0, 1.0]
        sample_rate: Samples per second
        source_path: File the samples were loaded from, if any
    """

    samples: np.ndarray
    sample_rate: int
    source_path: Optional[str] = None

    def __post_init__(self) -> None:
        self.samples = np.asarray(self.samples, dtype=np.float64)
        if self.samples.ndim != 1:
            raise ValueError(f"AudioRecording expects mono samples, got shape {self.samples.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")

    @classmethod
    def from_file(cls, filepath: Union[str, Path], target_sr: Optional[int] = None) -> "AudioRecording":
        samples, sample_rate = load_audio(filepath, target_sr=target_sr)
        return cls(samples=samples, sample_rate=sample_rate, source_path=str(filepath))

    @property
    def sample_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def nyquist(self) -> int:
        return self.sample_rate // 2

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.sample_count / self.sample_rate

    @property
    def epsilon(self) -> float:
        """Smallest non-zero amplitude step for the recording's nominal 16-bit depth."""
        return 1.0 / 32768.0

    def get_subsegment(self, start: float, end: float) -> "AudioRecording":
        """
        Slice the recording between two times in seconds.

        Raises:
            ValueError: If the interval is empty or outside the recording
        """
        if start < 0 or end <= start or start >= self.duration:
            raise ValueError(f"Invalid subsegment [{start}, {end}] for recording of {self.duration:.3f}s")
        first = int(round(start * self.sample_rate))
        last = min(self.sample_count, int(round(end * self.sample_rate)))
        return AudioRecording(self.samples[first:last].copy(), self.sample_rate, self.source_path)
