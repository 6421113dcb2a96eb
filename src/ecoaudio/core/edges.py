"""
Edges and Points of Interest
============================

Canny edge detection on spectrogram matrices and local-maximum picking.

The Canny detector works on a matrix rescaled to 0-255: Gaussian blur,
Sobel gradients, non-maximum suppression along the quantised gradient
direction, then hysteresis between a low and a high threshold.

Example:
    >>> from ecoaudio.core.edges import detect_edges, pick_local_maxima
    >>> edges = detect_edges(sonogram.data)
    >>> points = pick_local_maxima(sonogram.data, window=5)
"""

import logging
from typing import List, Tuple

import numpy as np
from scipy import ndimage

from ecoaudio.core.dsp.noise_profile import calculate_modal_noise_profile

logger = logging.getLogger(__name__)

DEFAULT_LOW_THRESHOLD = 20
DEFAULT_HIGH_THRESHOLD = 100
DEFAULT_GAUSSIAN_SIGMA = 1.4


def _to_byte_scale(m: np.ndarray) -> np.ndarray:
    lo = m.min()
    span = m.max() - lo
    if span == 0:
        return np.zeros_like(m)
    return (m - lo) / span * 255.0


def _quantise_orientation(gx: np.ndarray, gy: np.ndarray) -> np.ndarray:
    """Gradient direction rounded to 0, 45, 90 or 135 degrees."""
    angle = np.rad2deg(np.arctan2(gy, gx)) % 180.0
    q = np.zeros(angle.shape, dtype=np.int64)
    q[(angle >= 22.5) & (angle < 67.5)] = 45
    q[(angle >= 67.5) & (angle < 112.5)] = 90
    q[(angle >= 112.5) & (angle < 157.5)] = 135
    return q


def non_maximum_suppression(magnitude: np.ndarray, orientation: np.ndarray) -> np.ndarray:
    """Zero every gradient that is smaller than either neighbour across the edge."""
    padded = np.pad(magnitude, 1, mode="constant")
    rows, cols = magnitude.shape
    centre = padded[1:-1, 1:-1]

    def shifted(dr: int, dc: int) -> np.ndarray:
        return padded[1 + dr : 1 + dr + rows, 1 + dc : 1 + dc + cols]

    # (row, col) offsets of the two neighbours for each direction
    neighbours = {
        0: ((0, -1), (0, 1)),
        45: ((1, -1), (-1, 1)),
        90: ((1, 0), (-1, 0)),
        135: ((1, 1), (-1, -1)),
    }
    out = np.zeros_like(magnitude)
    for direction, (a, b) in neighbours.items():
        mask = orientation == direction
        keep = mask & (centre >= shifted(*a)) & (centre >= shifted(*b))
        out[keep] = magnitude[keep]
    return out


def hysteresis(suppressed: np.ndarray, low: float, high: float) -> np.ndarray:
    """
    Keep cells at or above ``high`` and any cell at or above ``low`` that is
    8-connected to one of them.
    """
    weak = suppressed >= low
    strong = suppressed >= high
    labels, count = ndimage.label(weak, structure=np.ones((3, 3)))
    if count == 0:
        return np.zeros(suppressed.shape, dtype=bool)
    connected = np.zeros(count + 1, dtype=bool)
    connected[np.unique(labels[strong])] = True
    connected[0] = False
    return connected[labels]


def detect_edges(
    matrix: np.ndarray,
    low_threshold: float = DEFAULT_LOW_THRESHOLD,
    high_threshold: float = DEFAULT_HIGH_THRESHOLD,
    sigma: float = DEFAULT_GAUSSIAN_SIGMA,
) -> np.ndarray:
    """
    Canny edges of a matrix.

    Args:
        matrix: 2-D input, any scale
        low_threshold: Hysteresis low threshold on the 0-255 scale
        high_threshold: Hysteresis high threshold on the 0-255 scale
        sigma: Gaussian blur standard deviation in cells

    Returns:
        uint8 matrix of edge strengths (0-255); non-edges are 0

    Raises:
        ValueError: For a non 2-D matrix or low threshold above high
    """
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got {m.ndim} dimensions")
    if low_threshold > high_threshold:
        raise ValueError(f"Low threshold ({low_threshold}) exceeds high threshold ({high_threshold})")

    blurred = ndimage.gaussian_filter(_to_byte_scale(m), sigma=sigma) if sigma > 0 else _to_byte_scale(m)
    gx = ndimage.sobel(blurred, axis=1)
    gy = ndimage.sobel(blurred, axis=0)
    magnitude = np.hypot(gx, gy)
    peak = magnitude.max()
    if peak == 0:
        logger.debug("Matrix has no gradient; no edges")
        return np.zeros(m.shape, dtype=np.uint8)

    suppressed = non_maximum_suppression(magnitude, _quantise_orientation(gx, gy)) / peak * 255.0
    edges = np.where(hysteresis(suppressed, low_threshold, high_threshold), suppressed, 0.0)
    return edges.astype(np.uint8)


def pick_local_maxima(matrix: np.ndarray, window: int) -> List[Tuple[int, int]]:
    """
    Cells strictly greater than every other cell in the surrounding window.

    Args:
        matrix: 2-D matrix
        window: Odd neighbourhood size; 1 returns every cell

    Returns:
        (row, col) positions in row-major order

    Raises:
        ValueError: If ``window`` is even or less than 1
    """
    if window < 1 or window % 2 == 0:
        raise ValueError(f"Neighbourhood window size must be odd and at least 1, got {window}")
    m = np.asarray(matrix, dtype=np.float64)
    if window == 1:
        is_max = np.ones(m.shape, dtype=bool)
    else:
        footprint = np.ones((window, window), dtype=bool)
        footprint[window // 2, window // 2] = False
        neighbourhood_max = ndimage.maximum_filter(m, footprint=footprint, mode="constant", cval=-np.inf)
        is_max = m > neighbourhood_max
    return [(int(r), int(c)) for r, c in zip(*np.nonzero(is_max))]


def noise_reduction_to_binary_spectrogram(m: np.ndarray, threshold: float, make_binary: bool = False) -> np.ndarray:
    """
    Subtract the modal noise of each bin and zero cells below ``threshold``.

    Args:
        m: Decibel spectrogram (frames x bins)
        threshold: Decibels above the modal noise; typically 3 to 10
        make_binary: Set surviving cells to 1

    Returns:
        Noise-reduced (or binary) matrix of the same shape
    """
    data = np.asarray(m, dtype=np.float64)
    modal_noise = calculate_modal_noise_profile(data, 0.0).noise_mode
    out = data - modal_noise[np.newaxis, :]
    below = out < threshold
    if make_binary:
        return np.where(below, 0.0, 1.0)
    return np.where(below, 0.0, out)
