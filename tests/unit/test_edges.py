"""
Unit tests for ecoaudio.core.edges.
"""

import numpy as np
import pytest

from ecoaudio.core.edges import detect_edges, hysteresis, noise_reduction_to_binary_spectrogram, pick_local_maxima


class TestDetectEdges:
    def test_step_edge(self):
        m = np.zeros((20, 20))
        m[:, 10:] = 1.0
        edges = detect_edges(m)
        assert edges.dtype == np.uint8
        assert edges[5:15, 8:12].any()
        assert not edges[:, :6].any()
        assert not edges[:, 14:].any()

    def test_flat_matrix(self):
        assert not detect_edges(np.ones((8, 8))).any()

    def test_rejects_1d(self):
        with pytest.raises(ValueError):
            detect_edges(np.ones(8))

    def test_threshold_order(self):
        with pytest.raises(ValueError):
            detect_edges(np.ones((4, 4)), low_threshold=50, high_threshold=10)


class TestHysteresis:
    def test_weak_cells_need_strong_neighbour(self):
        m = np.array(
            [
                [0.0, 0.0, 0.0, 0.0, 0.0],
                [0.0, 150.0, 50.0, 0.0, 50.0],
                [0.0, 0.0, 0.0, 0.0, 0.0],
            ]
        )
        keep = hysteresis(m, 20, 100)
        assert keep[1, 1] and keep[1, 2]
        assert not keep[1, 4]


class TestLocalMaxima:
    def test_isolated_peaks(self):
        m = np.zeros((10, 10))
        m[2, 2] = 5.0
        m[7, 7] = 3.0
        assert pick_local_maxima(m, 3) == [(2, 2), (7, 7)]

    def test_plateau_not_picked(self):
        m = np.zeros((5, 5))
        m[2, 2] = m[2, 3] = 4.0
        assert pick_local_maxima(m, 3) == []

    def test_window_one(self):
        assert len(pick_local_maxima(np.zeros((3, 4)), 1)) == 12

    @pytest.mark.parametrize("window", [0, 2, 4])
    def test_invalid_window(self, window):
        with pytest.raises(ValueError):
            pick_local_maxima(np.zeros((3, 3)), window)


class TestBinarySpectrogram:
    def test_block_survives(self):
        rng = np.random.default_rng(0)
        m = rng.normal(-60.0, 1.0, size=(200, 20))
        m[50:60, 5:10] += 20.0
        binary = noise_reduction_to_binary_spectrogram(m, 10.0, make_binary=True)
        assert set(np.unique(binary)) <= {0.0, 1.0}
        assert binary[50:60, 5:10].all()
        assert binary.sum() < 60

    def test_values_kept_without_binary(self):
        rng = np.random.default_rng(1)
        m = rng.normal(-60.0, 1.0, size=(200, 4))
        m[100, 0] = -30.0
        out = noise_reduction_to_binary_spectrogram(m, 10.0)
        assert out[100, 0] > 20.0
        assert out[0, 1] == 0.0
