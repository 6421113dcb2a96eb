"""
Analysis Package
================

Whole-recording analyses:
- Acoustic indices (ACI, ADI, AEI, BIO, NDSI, entropy, activity, cover)
- Oscillation rate spectra
- Long-duration spectrogram comparison
"""

from ecoaudio.core.analysis.indices import (
    IndexCalculationResult,
    SpectralIndices,
    SummaryIndices,
    batch_compute_indices,
    compute_aci,
    compute_adi,
    compute_aei,
    compute_bio,
    compute_indices,
    compute_indices_from_file,
    compute_ndsi,
    spectral_entropy,
    temporal_entropy,
    temporal_indices,
    temporal_spectral_indices,
)
from ecoaudio.core.analysis.ld_spectrogram import (
    get_difference_spectrogram,
    get_t_statistic_matrix,
)
from ecoaudio.core.analysis.oscillations import (
    OscillationAlgorithm,
    OscillationsResult,
    generate_oscillation_data,
    get_frequency_by_oscillations_matrix,
)

__all__ = [
    # indices
    "SummaryIndices",
    "SpectralIndices",
    "IndexCalculationResult",
    "compute_aci",
    "compute_adi",
    "compute_aei",
    "compute_bio",
    "compute_ndsi",
    "compute_indices",
    "compute_indices_from_file",
    "batch_compute_indices",
    "temporal_indices",
    "temporal_spectral_indices",
    "spectral_entropy",
    "temporal_entropy",
    # oscillations
    "OscillationAlgorithm",
    "OscillationsResult",
    "generate_oscillation_data",
    "get_frequency_by_oscillations_matrix",
    # ld_spectrogram
    "get_t_statistic_matrix",
    "get_difference_spectrogram",
]
