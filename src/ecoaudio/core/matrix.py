"""
Array and Matrix Utilities
==========================

Low-level numeric helpers shared by the DSP, spectrogram and index modules.
Spectrogram matrices are oriented frames x frequency bins throughout.

Example:
    >>> from ecoaudio.core.matrix import filter_moving_average, histogram
    >>> smoothed = filter_moving_average(profile, width=5)
    >>> counts, bin_width, lo, hi = histogram(values, bin_count=100)
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

__all__ = [
    "filter_moving_average",
    "histogram",
    "get_percentile_bin",
    "get_max_index",
    "normalise",
    "z_scores",
    "difference_from_mean",
    "submatrix",
    "matrix_to_binary",
    "unit_normalise_rows",
    "boolean_runs",
]


def filter_moving_average(values: Sequence[float], width: int) -> np.ndarray:
    """
    Centred moving average.

    Near the array ends the window shrinks to the neighbours that exist, so
    the output has the same length as the input and no padding bias.

    Args:
        values: 1-D array
        width: Window width in samples. Widths below 2 return a copy.

    Returns:
        Smoothed float array
    """
    x = np.asarray(values, dtype=np.float64)
    if width <= 1 or x.size == 0:
        return x.copy()

    half = width // 2
    n = x.size
    cumsum = np.concatenate(([0.0], np.cumsum(x)))
    idx = np.arange(n)
    lo = np.clip(idx - half, 0, n)
    hi = np.clip(idx + half + 1, 0, n)
    return (cumsum[hi] - cumsum[lo]) / (hi - lo)


def histogram(values: np.ndarray, bin_count: int) -> Tuple[np.ndarray, float, float, float]:
    """
    Histogram with a fixed number of equal-width bins over the data range.

    Args:
        values: Array of any shape
        bin_count: Number of bins (at least 1)

    Returns:
        Tuple of (counts, bin_width, min, max). For constant data the bin
        width is zero and every value lands in bin 0.
    """
    if bin_count < 1:
        raise ValueError(f"bin_count must be at least 1, got {bin_count}")

    x = np.asarray(values, dtype=np.float64).ravel()
    lo = float(x.min())
    hi = float(x.max())
    bin_width = (hi - lo) / bin_count
    counts = np.zeros(bin_count, dtype=np.int64)

    if bin_width == 0.0:
        counts[0] = x.size
        return counts, bin_width, lo, hi

    ids = ((x - lo) / bin_width).astype(np.int64)
    ids = np.clip(ids, 0, bin_count - 1)
    np.add.at(counts, ids, 1)
    return counts, bin_width, lo, hi


def get_percentile_bin(histo: Sequence[float], percentile: float) -> int:
    """Index of the first bin at which the cumulative count reaches ``percentile`` percent."""
    h = np.asarray(histo, dtype=np.float64)
    if percentile > 99:
        return h.size - 1
    threshold = h.sum() * percentile / 100.0
    cumulative = np.cumsum(h)
    hits = np.nonzero(cumulative >= threshold)[0]
    return int(hits[0]) if hits.size else h.size - 1


def get_max_index(values: Sequence[float]) -> int:
    """Index of the first maximum."""
    return int(np.argmax(np.asarray(values)))


def normalise(values: np.ndarray) -> np.ndarray:
    """Scale values linearly into [0, 1]. Constant input yields zeros."""
    x = np.asarray(values, dtype=np.float64)
    lo, hi = x.min(), x.max()
    if hi == lo:
        return np.zeros_like(x)
    return (x - lo) / (hi - lo)


def z_scores(values: Sequence[float]) -> np.ndarray:
    """Standardise to zero mean and unit standard deviation."""
    x = np.asarray(values, dtype=np.float64)
    sd = x.std()
    if sd == 0.0:
        return np.zeros_like(x)
    return (x - x.mean()) / sd


def difference_from_mean(values: Sequence[float]) -> np.ndarray:
    x = np.asarray(values, dtype=np.float64)
    return x - x.mean()


def submatrix(m: np.ndarray, row1: int, col1: int, row2: int, col2: int) -> np.ndarray:
    """
    Copy of the block between two corners, both inclusive.

    Raises:
        ValueError: If the corners are reversed or out of bounds
    """
    rows, cols = m.shape
    if row2 < row1 or col2 < col1:
        raise ValueError(f"Invalid submatrix corners ({row1}, {col1}) -> ({row2}, {col2})")
    if row1 < 0 or col1 < 0 or row2 >= rows or col2 >= cols:
        raise ValueError(f"Submatrix ({row1}, {col1}) -> ({row2}, {col2}) outside matrix of shape {m.shape}")
    return np.array(m[row1 : row2 + 1, col1 : col2 + 1], dtype=np.float64)


def matrix_to_binary(m: np.ndarray, threshold: float) -> np.ndarray:
    """1.0 where the value exceeds ``threshold``, else 0.0."""
    return (np.asarray(m) > threshold).astype(np.float64)


def unit_normalise_rows(m: np.ndarray) -> np.ndarray:
    """Scale each row to unit L2 norm. All-zero rows are left at zero."""
    x = np.asarray(m, dtype=np.float64)
    norms = np.linalg.norm(x, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return x / norms


def boolean_runs(mask: Sequence[bool]) -> List[Tuple[int, int]]:
    """
    Start and end (exclusive) indices of each run of True values.

    Example:
        >>> boolean_runs([False, True, True, False, True])
        [(1, 3), (4, 5)]
    """
    m = np.asarray(mask, dtype=np.int8)
    if m.size == 0:
        return []
    edges = np.diff(np.concatenate(([0], m, [0])))
    starts = np.nonzero(edges == 1)[0]
    ends = np.nonzero(edges == -1)[0]
    return list(zip(starts.tolist(), ends.tolist()))
