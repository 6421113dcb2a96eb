"""
Spectrogram construction: framing, amplitude, decibel and cepstral sonograms.
"""

from ecoaudio.core.spectrogram.cepstral import (
    SpectrogramCepstral,
    TriAvSonogram,
    get_all_sonograms,
    make_cepstrogram,
    tri_av_vectors,
)
from ecoaudio.core.spectrogram.config import MfccConfig, SonogramConfig
from ecoaudio.core.spectrogram.sonogram import (
    AmplitudeSonogram,
    BaseSonogram,
    SpectrogramStandard,
    decibel_spectra,
    frame_ids,
    get_frames,
)

__all__ = [
    # Configuration
    "SonogramConfig",
    "MfccConfig",
    # Sonograms
    "BaseSonogram",
    "AmplitudeSonogram",
    "SpectrogramStandard",
    "SpectrogramCepstral",
    "TriAvSonogram",
    # Functions
    "frame_ids",
    "get_frames",
    "decibel_spectra",
    "make_cepstrogram",
    "tri_av_vectors",
    "get_all_sonograms",
]
