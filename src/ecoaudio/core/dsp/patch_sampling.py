"""
Patch Sampling
==============

Extraction of small rectangular patches from a spectrogram for unsupervised
feature learning. Each patch is flattened row-major into one vector, so a
set of patches is a 2-D array with one patch per row.

Example:
    >>> from ecoaudio.core.dsp.patch_sampling import SamplingMethod, get_patches
    >>> patches = get_patches(spectrogram, patch_width=16, patch_height=1,
    ...                       n_patches=100, method=SamplingMethod.RANDOM)
    >>> patches.shape
    (100, 16)
"""

import logging
from enum import IntEnum
from typing import List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

__all__ = [
    "SamplingMethod",
    "DEFAULT_SEED",
    "get_patches",
    "get_sequential_patches",
    "get_random_patches",
    "get_overlapped_random_patches",
    "convert_patches",
    "concatenate_grid_of_patches",
    "get_freq_band_matrices",
    "get_arbitrary_freq_band_matrix",
    "concat_freq_band_matrices",
    "list_of_2d_arrays_to_one",
    "add_row",
]

DEFAULT_SEED = 100


class SamplingMethod(IntEnum):
    SEQUENTIAL = 0
    RANDOM = 1
    OVERLAPPED_RANDOM = 2


def _check_patch_size(matrix: np.ndarray, patch_width: int, patch_height: int) -> None:
    rows, cols = matrix.shape
    if patch_width < 1 or patch_height < 1:
        raise ValueError(f"Patch size must be positive, got {patch_height}x{patch_width}")
    if patch_height > rows or patch_width > cols:
        raise ValueError(f"Patch {patch_height}x{patch_width} does not fit in matrix of shape {matrix.shape}")


def get_patches(
    spectrogram: np.ndarray,
    patch_width: int,
    patch_height: int,
    n_patches: int,
    method: SamplingMethod,
    seed: int = DEFAULT_SEED,
) -> np.ndarray:
    """
    Sample patches from a spectrogram.

    Args:
        spectrogram: Matrix (frames x bins)
        patch_width: Patch width in frequency bins
        patch_height: Patch height in frames
        n_patches: Number of patches for the random methods; ignored by
            sequential sampling, which tiles the whole matrix
        method: Sampling method
        seed: Random seed for the random methods

    Returns:
        Array of flattened patches, one per row
    """
    m = np.asarray(spectrogram, dtype=np.float64)
    _check_patch_size(m, patch_width, patch_height)
    method = SamplingMethod(method)

    if method is SamplingMethod.SEQUENTIAL:
        return get_sequential_patches(m, patch_width, patch_height)
    if method is SamplingMethod.RANDOM:
        return get_random_patches(m, patch_width, patch_height, n_patches, seed)
    return get_overlapped_random_patches(m, patch_width, patch_height, n_patches, seed)


def get_sequential_patches(matrix: np.ndarray, patch_width: int, patch_height: int) -> np.ndarray:
    """Non-overlapping tiles in row order; partial tiles at the edges are dropped."""
    rows, cols = matrix.shape
    n_rows = rows // patch_height
    n_cols = cols // patch_width
    trimmed = matrix[: n_rows * patch_height, : n_cols * patch_width]
    tiles = trimmed.reshape(n_rows, patch_height, n_cols, patch_width).swapaxes(1, 2)
    return tiles.reshape(n_rows * n_cols, patch_height * patch_width).copy()


def _random_origins(rng: np.random.Generator, rows: int, cols: int, patch_width: int, patch_height: int):
    # upper bounds are exclusive; a patch as tall or wide as the matrix has one position
    row = int(rng.integers(0, max(1, rows - patch_height)))
    col = int(rng.integers(0, max(1, cols - patch_width)))
    return row, col


def get_random_patches(
    matrix: np.ndarray, patch_width: int, patch_height: int, n_patches: int, seed: int = DEFAULT_SEED
) -> np.ndarray:
    rng = np.random.default_rng(seed)
    rows, cols = matrix.shape
    patches = np.empty((n_patches, patch_height * patch_width))
    for i in range(n_patches):
        r, c = _random_origins(rng, rows, cols, patch_width, patch_height)
        patches[i] = matrix[r : r + patch_height, c : c + patch_width].ravel()
    return patches


def get_overlapped_random_patches(
    matrix: np.ndarray, patch_width: int, patch_height: int, n_patches: int, seed: int = DEFAULT_SEED
) -> np.ndarray:
    """
    Random patches, each followed by the patch one frame later.

    Patches come in pairs, so an odd ``n_patches`` yields one extra patch.
    """
    rows, cols = matrix.shape
    if rows <= patch_height:
        raise ValueError("Overlapped sampling needs at least one more frame than the patch height")

    rng = np.random.default_rng(seed)
    patches: List[np.ndarray] = []
    while len(patches) < n_patches:
        r, c = _random_origins(rng, rows, cols, patch_width, patch_height)
        patches.append(matrix[r : r + patch_height, c : c + patch_width].ravel())
        patches.append(matrix[r + 1 : r + 1 + patch_height, c : c + patch_width].ravel())
    return np.array(patches)


def convert_patches(whitened_patches: np.ndarray, patch_width: int, patch_height: int, col_size: int) -> np.ndarray:
    """Reshape flattened patches back into tiles and reassemble them into a matrix."""
    tiles = [np.asarray(p).reshape(patch_height, patch_width) for p in whitened_patches]
    return concatenate_grid_of_patches(tiles, col_size, patch_width, patch_height)


def concatenate_grid_of_patches(
    patches: Sequence[np.ndarray], col_size: int, patch_width: int, patch_height: int
) -> np.ndarray:
    """
    Lay tiles out in row order, ``col_size // patch_width`` tiles per row.

    Tiles that do not complete a row are dropped.
    """
    per_row = col_size // patch_width
    if per_row < 1:
        raise ValueError(f"col_size {col_size} is narrower than one patch ({patch_width})")
    n_rows = len(patches) // per_row
    out = np.zeros((n_rows * patch_height, per_row * patch_width))
    for i in range(n_rows):
        for j in range(per_row):
            tile = patches[i * per_row + j]
            out[i * patch_height : (i + 1) * patch_height, j * patch_width : (j + 1) * patch_width] = tile
    return out


def get_freq_band_matrices(matrix: np.ndarray, n_bands: int) -> List[np.ndarray]:
    """
    Split the frequency axis into ``n_bands`` equal-width bands.

    Bands are ``bins // n_bands`` wide; leftover top bins are dropped.
    """
    m = np.asarray(matrix, dtype=np.float64)
    width = m.shape[1] // n_bands
    if width < 1:
        raise ValueError(f"Cannot split {m.shape[1]} bins into {n_bands} bands")
    return [m[:, b * width : (b + 1) * width].copy() for b in range(n_bands)]


def get_arbitrary_freq_band_matrix(matrix: np.ndarray, min_bin: int, max_bin: int) -> np.ndarray:
    """Columns ``min_bin`` to ``max_bin`` inclusive."""
    m = np.asarray(matrix, dtype=np.float64)
    if not 0 <= min_bin <= max_bin < m.shape[1]:
        raise ValueError(f"Invalid frequency bin range [{min_bin}, {max_bin}] for {m.shape[1]} bins")
    return m[:, min_bin : max_bin + 1].copy()


def concat_freq_band_matrices(submatrices: Sequence[np.ndarray]) -> np.ndarray:
    """Join band matrices side by side, lowest band first."""
    return np.hstack([np.asarray(s, dtype=np.float64) for s in submatrices])


def list_of_2d_arrays_to_one(arrays: Sequence[np.ndarray]) -> np.ndarray:
    """
    Stack patch matrices vertically.

    Raises:
        ValueError: If the matrices do not all have the same number of rows
    """
    if not arrays:
        raise ValueError("No arrays to combine")
    n_rows = np.asarray(arrays[0]).shape[0]
    for a in arrays:
        if np.asarray(a).shape[0] != n_rows:
            raise ValueError("All arrays must be the same length")
    return np.vstack(arrays)


def add_row(matrix: np.ndarray, value: Optional[float] = 1.0) -> np.ndarray:
    """Append one row filled with ``value``."""
    m = np.asarray(matrix, dtype=np.float64)
    return np.vstack((m, np.full((1, m.shape[1]), value)))
