"""
Long-duration spectrogram comparison.

Compares two long-duration (false-colour) index spectrograms, each given as
a matrix of per-minute averages, a matching matrix of standard deviations
and the sample count behind them. Cells where the Welch t-statistic is
significant keep the difference between the two; the rest are zeroed.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd
from scipy import stats

logger = logging.getLogger(__name__)

# 0.05% two-tailed confidence at infinite degrees of freedom
T_STAT_THRESHOLD = 3.29
COLOUR_GAIN = 2.0

# entropy indices are stored as 1 - entropy in the spectrogram images
_INVERTED_INDICES = {"ENT", "TEN"}


def get_t_statistic_matrix(
    avg1: np.ndarray, sd1: np.ndarray, n1: int, avg2: np.ndarray, sd2: np.ndarray, n2: int
) -> np.ndarray:
    """
    Welch t-statistic of every cell of two averaged spectrograms.

    Negative averages (less than zero dB above background) are raised to 0
    and their standard deviation set to 0. Cells with zero variance in both
    spectrograms have a t-statistic of 0.
    """
    a1 = np.asarray(avg1, dtype=np.float64)
    a2 = np.asarray(avg2, dtype=np.float64)
    if a1.shape != a2.shape or np.shape(sd1) != a1.shape or np.shape(sd2) != a1.shape:
        raise ValueError("Average and standard deviation matrices must all have the same shape")

    s1 = np.where(a1 < 0, 0.0, np.asarray(sd1, dtype=np.float64))
    s2 = np.where(a2 < 0, 0.0, np.asarray(sd2, dtype=np.float64))
    a1 = np.maximum(a1, 0.0)
    a2 = np.maximum(a2, 0.0)

    with np.errstate(divide="ignore", invalid="ignore"):
        t, _ = stats.ttest_ind_from_stats(a1, s1, n1, a2, s2, n2, equal_var=False)
    return np.nan_to_num(np.asarray(t, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)


def get_difference_spectrogram(
    m1: np.ndarray, m2: np.ndarray, t_matrix: np.ndarray, threshold: float = T_STAT_THRESHOLD
) -> np.ndarray:
    """``m1 - m2`` where ``|t| >= threshold``, else 0."""
    diff = np.asarray(m1, dtype=np.float64) - np.asarray(m2, dtype=np.float64)
    return np.where(np.abs(t_matrix) >= threshold, diff, 0.0)


def draw_difference_spectrogram(difference: np.ndarray, colour_gain: float = COLOUR_GAIN) -> np.ndarray:
    """
    RGB image of a difference spectrogram of normalised values.

    Positive differences are drawn in red and negative ones in green.
    """
    d = np.asarray(difference, dtype=np.float64) * colour_gain
    value = np.clip(np.abs(np.rint(d * 255)), 0, 255).astype(np.uint8)
    image = np.zeros(d.shape + (3,), dtype=np.uint8)
    image[..., 0] = np.where(d >= 0, value, 0)
    image[..., 1] = np.where(d < 0, value, 0)
    return image


def index_matrix_for_comparison(key: str, matrix: np.ndarray) -> np.ndarray:
    """Entropy indices are compared as ``1 - value``; other indices unchanged."""
    m = np.asarray(matrix, dtype=np.float64)
    return 1.0 - m if key.upper() in _INVERTED_INDICES else m


def read_index_matrix(path: Union[str, Path]) -> np.ndarray:
    """
    Read a spectral index matrix from CSV.

    Rows are minutes and columns frequency bins. A leading ``start_time``
    column, as written by the temporal index writer, is dropped along with
    any non-numeric columns.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Index matrix not found: {path}")
    df = pd.read_csv(p)
    if len(df.columns) and df.columns[0] == "start_time":
        df = df.drop(columns="start_time")
    numeric = df.select_dtypes(include=[np.number])
    if numeric.shape[1] < df.shape[1]:
        logger.debug(f"Dropped {df.shape[1] - numeric.shape[1]} non-numeric column(s) from {p.name}")
    return numeric.to_numpy(dtype=np.float64)
