"""
ecoaudio - Bioacoustic Analysis Toolkit
=======================================

Spectrograms, noise reduction, acoustic indices, event detection and
unsupervised feature learning for environmental audio recordings.

Version: 0.3.0
"""

__version__ = "0.3.0"

from ecoaudio.core.audio import AUDIO_EXTENSIONS, AudioRecording, load_audio

__all__ = [
    "__version__",
    # Audio
    "AUDIO_EXTENSIONS",
    "AudioRecording",
    "load_audio",
]
