"""
Unsupervised Feature Learning
=============================

Learn a dictionary of spectrogram patch centroids from a folder of
recordings, then describe new recordings by their similarity to those
centroids.

Pipeline for learning:
1. Decibel spectrogram of each recording, RMS normalised
2. PCA noise reduction (median profile subtraction)
3. Optional restriction to a band of frequency bins, split into sub-bands
4. Random patches from every sub-band, pooled across recordings
5. PCA whitening of the pooled patches and k-means clustering

Feature extraction takes sequential patches of a spectrogram prepared the
same way, normalises them to unit length and takes dot products with the
unit-length centroids. ``temporal_summary`` reduces those per-patch
vectors to mean, standard deviation and maximum over fixed blocks.

Example:
    >>> from ecoaudio.core.feature_learning import FeatureLearningSettings, learn_cluster_centroids
    >>> settings = FeatureLearningSettings(min_freq_bin=40, max_freq_bin=80)
    >>> result = learn_cluster_centroids("recordings/", settings)
    >>> result.bands[0].centroids.shape
    (16, 41)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ecoaudio.core.audio import AUDIO_EXTENSIONS, AudioRecording
from ecoaudio.core.dsp import pca_whitening
from ecoaudio.core.dsp.patch_sampling import (
    DEFAULT_SEED,
    SamplingMethod,
    get_arbitrary_freq_band_matrix,
    get_freq_band_matrices,
    get_patches,
    list_of_2d_arrays_to_one,
)
from ecoaudio.core.dsp.snr import rms_normalization
from ecoaudio.core.exceptions import EmptyInputError
from ecoaudio.core.matrix import unit_normalise_rows
from ecoaudio.core.spectrogram import SonogramConfig, SpectrogramStandard

logger = logging.getLogger(__name__)

# 24 frames of 1024 samples with 10.28% overlap span one second at 22050 Hz
FRAMES_PER_SECOND = 24


@dataclass
class FeatureLearningSettings:
    """
    Settings for patch sampling, whitening and clustering.

    Attributes:
        window_size: Spectrogram frame size
        window_overlap: Spectrogram frame overlap
        min_freq_bin: First frequency bin kept (None for the full band)
        max_freq_bin: Last frequency bin kept, inclusive (None for the full band)
        n_freq_bands: Number of equal sub-bands learned separately
        patch_width: Patch width in bins; None uses the full sub-band width
        patch_height: Patch height in frames
        n_random_patches: Random patches taken from each sub-band of each recording
        n_clusters: Number of k-means clusters
        seed: Seed for patch sampling and k-means
        block_frames: Patches per temporal summary block; None means one minute
    """

    window_size: int = 1024
    window_overlap: float = 0.1028
    min_freq_bin: Optional[int] = None
    max_freq_bin: Optional[int] = None
    n_freq_bands: int = 1
    patch_width: Optional[int] = None
    patch_height: int = 1
    n_random_patches: int = 80
    n_clusters: int = 16
    seed: int = DEFAULT_SEED
    block_frames: Optional[int] = None

    def __post_init__(self) -> None:
        if self.n_freq_bands < 1:
            raise ValueError(f"n_freq_bands must be at least 1, got {self.n_freq_bands}")
        if self.patch_height < 1:
            raise ValueError(f"patch_height must be at least 1, got {self.patch_height}")
        if self.n_clusters < 1:
            raise ValueError(f"n_clusters must be at least 1, got {self.n_clusters}")
        if (self.min_freq_bin is None) != (self.max_freq_bin is None):
            raise ValueError("min_freq_bin and max_freq_bin must be given together")
        if self.min_freq_bin is not None and self.min_freq_bin > self.max_freq_bin:
            raise ValueError(f"min_freq_bin ({self.min_freq_bin}) exceeds max_freq_bin ({self.max_freq_bin})")

    @property
    def frames_per_block(self) -> int:
        if self.block_frames is not None:
            return self.block_frames
        return (FRAMES_PER_SECOND // self.patch_height) * 60

    def band_patch_width(self, matrix_width: int) -> int:
        """Patch width for a matrix of ``matrix_width`` bins split into sub-bands."""
        if self.patch_width is not None:
            return self.patch_width
        return matrix_width // self.n_freq_bands

    def sonogram_config(self) -> SonogramConfig:
        return SonogramConfig(window_size=self.window_size, window_overlap=self.window_overlap)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureLearningSettings":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


@dataclass
class BandClusters:
    """
    Clustering output for one frequency sub-band.

    Attributes:
        centroids: Cluster centres in whitened patch space (clusters x patch size)
        sizes: Number of patches assigned to each cluster id
        labels: Cluster id of each training patch
        whitening: PCA whitening output the clusters were fitted on
    """

    centroids: np.ndarray
    sizes: Dict[int, int]
    labels: np.ndarray
    whitening: pca_whitening.WhiteningOutput

    @property
    def sort_order(self) -> List[int]:
        return sort_clusters_by_size(self.sizes)


@dataclass
class FeatureLearningResult:
    """Learned clusters for every sub-band plus the settings that produced them."""

    settings: FeatureLearningSettings
    bands: List[BandClusters] = field(default_factory=list)
    file_count: int = 0
    patch_width: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "settings": self.settings.to_dict(),
            "file_count": self.file_count,
            "patch_width": self.patch_width,
            "bands": [
                {"n_clusters": int(b.centroids.shape[0]), "sizes": b.sizes, "sort_order": b.sort_order}
                for b in self.bands
            ],
        }


# =============================================================================
# Preparation
# =============================================================================


def prepare_spectrogram(matrix: np.ndarray, settings: FeatureLearningSettings) -> np.ndarray:
    """RMS normalise, PCA noise reduce and cut out the configured bin range."""
    m = rms_normalization(matrix)
    m = pca_whitening.noise_reduction(m)
    if settings.min_freq_bin is not None:
        m = get_arbitrary_freq_band_matrix(m, settings.min_freq_bin, settings.max_freq_bin)
    return m


def spectrogram_from_file(path: Union[str, Path], settings: FeatureLearningSettings) -> np.ndarray:
    recording = AudioRecording.from_file(path)
    config = settings.sonogram_config()
    config.source_name = Path(path).name
    sonogram = SpectrogramStandard(config, recording)
    return prepare_spectrogram(sonogram.data, settings)


def list_audio_files(directory: Union[str, Path]) -> List[Path]:
    """
    Non-empty audio files in a directory, sorted by name.

    Raises:
        FileNotFoundError: If the directory does not exist
        EmptyInputError: If it holds no non-empty audio file
    """
    folder = Path(directory)
    if not folder.is_dir():
        raise FileNotFoundError(f"Input directory not found: {directory}")

    files = []
    for path in sorted(folder.iterdir()):
        if path.suffix.lower() not in AUDIO_EXTENSIONS:
            continue
        if path.stat().st_size == 0:
            logger.warning(f"Skipping empty file {path.name}")
            continue
        files.append(path)

    if not files:
        raise EmptyInputError("No audio files found", directory=str(folder))
    return files


# =============================================================================
# Learning
# =============================================================================


def sort_clusters_by_size(sizes: Dict[int, int]) -> List[int]:
    """Cluster ids ordered from largest to smallest; ties keep id order."""
    return [cid for cid, _ in sorted(sizes.items(), key=lambda item: (-item[1], item[0]))]


def _cluster(patches: np.ndarray, settings: FeatureLearningSettings) -> BandClusters:
    from sklearn.cluster import KMeans

    whitened = pca_whitening.whitening(patches)
    data = whitened.reversion

    n_clusters = settings.n_clusters
    if data.shape[0] < n_clusters:
        logger.warning(f"Only {data.shape[0]} patches for {n_clusters} clusters; reducing cluster count")
        n_clusters = data.shape[0]

    kmeans = KMeans(n_clusters=n_clusters, n_init=10, random_state=settings.seed)
    labels = kmeans.fit_predict(data)
    counts = np.bincount(labels, minlength=n_clusters)
    sizes = {cid: int(counts[cid]) for cid in range(n_clusters)}
    return BandClusters(centroids=kmeans.cluster_centers_, sizes=sizes, labels=labels, whitening=whitened)


def learn_cluster_centroids(
    inputs: Union[str, Path, Sequence[Union[str, Path, np.ndarray]]],
    settings: Optional[FeatureLearningSettings] = None,
) -> FeatureLearningResult:
    """
    Learn patch centroids from recordings or prepared spectrogram matrices.

    Args:
        inputs: A directory of recordings, a list of audio paths, or a list
            of spectrogram matrices already passed through
            :func:`prepare_spectrogram`
        settings: Learning settings (defaults apply when omitted)

    Returns:
        FeatureLearningResult with one BandClusters per sub-band

    Raises:
        EmptyInputError: If there is nothing to learn from
    """
    settings = settings or FeatureLearningSettings()

    if isinstance(inputs, (str, Path)):
        items: List[Union[Path, np.ndarray]] = list(list_audio_files(inputs))
    else:
        items = [i if isinstance(i, np.ndarray) else Path(i) for i in inputs]
    if not items:
        raise EmptyInputError("No recordings or matrices to learn from")

    band_patches: List[List[np.ndarray]] = [[] for _ in range(settings.n_freq_bands)]
    patch_width = 0
    for item in items:
        if isinstance(item, np.ndarray):
            matrix = np.asarray(item, dtype=np.float64)
        else:
            logger.info(f"Sampling patches from {item.name}")
            matrix = spectrogram_from_file(item, settings)

        bands = get_freq_band_matrices(matrix, settings.n_freq_bands)
        patch_width = settings.band_patch_width(matrix.shape[1])
        for i, band in enumerate(bands):
            band_patches[i].append(
                get_patches(
                    band,
                    patch_width,
                    settings.patch_height,
                    settings.n_random_patches,
                    SamplingMethod.RANDOM,
                    seed=settings.seed,
                )
            )

    result = FeatureLearningResult(settings=settings, file_count=len(items), patch_width=patch_width)
    for i, patches in enumerate(band_patches):
        pooled = list_of_2d_arrays_to_one(patches)
        logger.debug(f"Band {i}: clustering {pooled.shape[0]} patches of size {pooled.shape[1]}")
        result.bands.append(_cluster(pooled, settings))
    return result


# =============================================================================
# Feature extraction
# =============================================================================


def extract_features(
    matrix: np.ndarray, centroids: Sequence[np.ndarray], settings: FeatureLearningSettings
) -> List[np.ndarray]:
    """
    Similarity of each sequential patch to each centroid, per sub-band.

    Args:
        matrix: Spectrogram prepared with :func:`prepare_spectrogram`
        centroids: One centroid matrix per sub-band
        settings: Settings used for learning

    Returns:
        One array (patches x clusters) per sub-band
    """
    bands = get_freq_band_matrices(matrix, settings.n_freq_bands)
    if len(centroids) != len(bands):
        raise ValueError(f"Expected centroids for {len(bands)} bands, got {len(centroids)}")

    patch_width = settings.band_patch_width(np.asarray(matrix).shape[1])
    features = []
    for band, band_centroids in zip(bands, centroids):
        patches = get_patches(band, patch_width, settings.patch_height, 0, SamplingMethod.SEQUENTIAL)
        features.append(unit_normalise_rows(patches) @ unit_normalise_rows(band_centroids).T)
    return features


def temporal_summary(features: np.ndarray, n_frames: int) -> Dict[str, np.ndarray]:
    """
    Mean, standard deviation and maximum of feature vectors over blocks of frames.

    Blocks start at 0 and advance by ``n_frames``; only blocks followed by
    at least one further frame are summarised, so a trailing block that ends
    exactly at the last frame is dropped.

    Returns:
        Dict with ``mean``, ``std`` and ``max`` arrays (blocks x features)
    """
    f = np.asarray(features, dtype=np.float64)
    if n_frames < 1:
        raise ValueError(f"n_frames must be at least 1, got {n_frames}")

    means, stds, maxes = [], [], []
    start = 0
    while start + n_frames < f.shape[0]:
        block = f[start : start + n_frames]
        means.append(block.mean(axis=0))
        stds.append(block.std(axis=0))
        maxes.append(block.max(axis=0))
        start += n_frames

    width = f.shape[1] if f.ndim == 2 else 0
    empty = np.empty((0, width))
    return {
        "mean": np.array(means) if means else empty,
        "std": np.array(stds) if stds else empty,
        "max": np.array(maxes) if maxes else empty,
    }


def reconstruct_from_clusters(patches: np.ndarray, clusters: BandClusters) -> np.ndarray:
    """Replace each patch with the centroid of its nearest cluster."""
    p = np.asarray(patches, dtype=np.float64)
    distances = ((p[:, None, :] - clusters.centroids[None, :, :]) ** 2).sum(axis=2)
    return clusters.centroids[np.argmin(distances, axis=1)]
