"""
PCA Whitening
=============

Principal component whitening of patch matrices, keeping enough components
to explain 95% of the variance, and the reverse projection back to patch
space.

Example:
    >>> from ecoaudio.core.dsp.pca_whitening import whitening
    >>> result = whitening(patches)
    >>> result.reversion.shape == patches.shape
    True
"""

import logging
from dataclasses import dataclass

import numpy as np

from ecoaudio.core.dsp.noise_profile import calculate_median_noise_profile
from ecoaudio.core.dsp.snr import truncate_bg_noise_from_spectrogram
from ecoaudio.core.matrix import filter_moving_average

logger = logging.getLogger(__name__)

EXPLAINED_VARIANCE = 0.95


@dataclass
class WhiteningOutput:
    """
    Attributes:
        projection_matrix: Eigenvectors with rows beyond the retained outputs zeroed
        reversion: Whitened data projected back to patch space
        eigen_vectors: All principal axes, one per row
        components: Dimension of the reverted data
    """

    projection_matrix: np.ndarray
    reversion: np.ndarray
    eigen_vectors: np.ndarray
    components: int

    @property
    def n_outputs(self) -> int:
        """Number of retained principal components."""
        return int(np.count_nonzero(np.any(self.projection_matrix != 0.0, axis=1)))


def whitening(matrix: np.ndarray) -> WhiteningOutput:
    """
    Whiten a patch matrix (one patch per row).

    Raises:
        ValueError: If the matrix is None or empty
    """
    from sklearn.decomposition import PCA

    if matrix is None:
        raise ValueError("The input matrix is empty")
    m = np.asarray(matrix, dtype=np.float64)
    if m.size == 0 or m.ndim != 2:
        raise ValueError("The input matrix is empty")

    pca = PCA(whiten=True, svd_solver="full")
    projected_all = pca.fit_transform(m)

    cumulative = np.cumsum(pca.explained_variance_ratio_)
    n_outputs = int(np.searchsorted(cumulative, EXPLAINED_VARIANCE) + 1)
    n_outputs = min(n_outputs, projected_all.shape[1])
    projected = projected_all[:, :n_outputs]

    eigen_vectors = pca.components_
    components = eigen_vectors.shape[1]
    logger.debug(f"PCA whitening kept {n_outputs} of {eigen_vectors.shape[0]} components")

    return WhiteningOutput(
        projection_matrix=get_projection_matrix(eigen_vectors, n_outputs),
        reversion=revert(projected, eigen_vectors, components),
        eigen_vectors=eigen_vectors,
        components=components,
    )


def get_projection_matrix(eigen_vectors: np.ndarray, n_outputs: int) -> np.ndarray:
    """Copy of ``eigen_vectors`` with every row from ``n_outputs`` on set to zero."""
    projection = np.array(eigen_vectors, dtype=np.float64)
    projection[n_outputs:] = 0.0
    return projection


def revert(projected: np.ndarray, eigen_vectors: np.ndarray, n_components: int) -> np.ndarray:
    """
    Map projected data back to the original axes.

    ``reversion[j, i] = sum_k projected[j, k] * eigen_vectors[k, i]`` for the
    first ``n_components`` axes.
    """
    p = np.asarray(projected, dtype=np.float64)
    k = p.shape[1]
    return p @ np.asarray(eigen_vectors)[:k, :n_components]


def reconstruct_spectrogram(
    projection_matrix: np.ndarray,
    sequential_patch_matrix: np.ndarray,
    eigen_vectors: np.ndarray,
    n_components: int,
) -> np.ndarray:
    """Project sequential patches onto the retained axes and revert them, removing minor components."""
    cleaned = np.asarray(sequential_patch_matrix, dtype=np.float64) @ np.asarray(projection_matrix).T
    return revert(cleaned, eigen_vectors, n_components)


def noise_reduction(matrix: np.ndarray) -> np.ndarray:
    """Subtract the median noise profile (smoothed, width 7) and truncate at zero."""
    profile = calculate_median_noise_profile(matrix)
    smoothed = filter_moving_average(profile.noise_thresholds, 7)
    return truncate_bg_noise_from_spectrogram(matrix, smoothed)
