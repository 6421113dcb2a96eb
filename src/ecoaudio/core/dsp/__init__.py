"""
DSP Package
===========

Signal processing transforms applied to waveforms and spectrograms:
- snr: frame energy, signal-to-noise ratio and noise reduction
- noise_profile: per-bin background noise estimation
- pca_whitening: PCA whitening of patch matrices
- patch_sampling: spectrogram patch extraction
"""

from ecoaudio.core.dsp.noise_profile import (
    NoiseProfile,
    calculate_mean_noise_profile,
    calculate_median_noise_profile,
    calculate_modal_noise_profile,
    calculate_noise_using_lamels_algorithm,
)
from ecoaudio.core.dsp.snr import (
    SNR,
    BackgroundNoise,
    NoiseReductionType,
    SnrStatistics,
    key_to_noise_reduction_type,
    noise_reduce,
)

__all__ = [
    # snr
    "SNR",
    "BackgroundNoise",
    "NoiseReductionType",
    "SnrStatistics",
    "key_to_noise_reduction_type",
    "noise_reduce",
    # noise_profile
    "NoiseProfile",
    "calculate_modal_noise_profile",
    "calculate_mean_noise_profile",
    "calculate_median_noise_profile",
    "calculate_noise_using_lamels_algorithm",
]
