"""
Unit tests for ecoaudio.core.analysis.ld_spectrogram.
"""

import numpy as np
import pandas as pd
import pytest

from ecoaudio.core.analysis.ld_spectrogram import (
    draw_difference_spectrogram,
    get_difference_spectrogram,
    get_t_statistic_matrix,
    index_matrix_for_comparison,
    read_index_matrix,
)


class TestTStatistic:
    def test_welch(self):
        t = get_t_statistic_matrix([[10.0]], [[1.0]], 30, [[0.0]], [[1.0]], 30)
        assert t[0, 0] == pytest.approx(10.0 / np.sqrt(2.0 / 30.0))

    def test_zero_variance(self):
        t = get_t_statistic_matrix([[1.0]], [[0.0]], 10, [[2.0]], [[0.0]], 10)
        assert t[0, 0] == 0.0

    def test_negative_average_clamped(self):
        t = get_t_statistic_matrix([[-5.0]], [[3.0]], 10, [[0.0]], [[0.0]], 10)
        assert t[0, 0] == 0.0

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            get_t_statistic_matrix(np.ones((2, 2)), np.ones((2, 2)), 5, np.ones((2, 3)), np.ones((2, 3)), 5)


class TestDifference:
    def test_thresholded(self):
        m1 = np.array([[0.8, 0.2]])
        m2 = np.array([[0.3, 0.6]])
        t = np.array([[5.0, 1.0]])
        np.testing.assert_allclose(get_difference_spectrogram(m1, m2, t), [[0.5, 0.0]])

    def test_colours(self):
        image = draw_difference_spectrogram(np.array([[0.25, -0.25, 0.0]]))
        assert tuple(image[0, 0]) == (128, 0, 0)
        assert tuple(image[0, 1]) == (0, 128, 0)
        assert tuple(image[0, 2]) == (0, 0, 0)


class TestIndexMatrices:
    def test_entropy_inverted(self):
        m = np.array([[0.25, 1.0]])
        np.testing.assert_allclose(index_matrix_for_comparison("ent", m), [[0.75, 0.0]])
        np.testing.assert_allclose(index_matrix_for_comparison("ACI", m), m)

    def test_read_drops_start_time(self, tmp_path):
        df = pd.DataFrame([[0.1, 0.2], [0.3, 0.4]], index=pd.Index([0.0, 60.0], name="start_time"))
        path = tmp_path / "rec.ACI.csv"
        df.to_csv(path)
        np.testing.assert_allclose(read_index_matrix(path), [[0.1, 0.2], [0.3, 0.4]])

    def test_read_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_index_matrix(tmp_path / "missing.csv")
