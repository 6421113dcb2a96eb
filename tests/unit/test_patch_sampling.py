"""
Unit tests for ecoaudio.core.dsp.patch_sampling.
"""

import numpy as np
import pytest

from ecoaudio.core.dsp.patch_sampling import (
    SamplingMethod,
    add_row,
    concat_freq_band_matrices,
    concatenate_grid_of_patches,
    convert_patches,
    get_arbitrary_freq_band_matrix,
    get_freq_band_matrices,
    get_patches,
    list_of_2d_arrays_to_one,
)


@pytest.fixture
def grid():
    return np.arange(24, dtype=float).reshape(6, 4)


class TestSequentialPatches:
    def test_tiles_in_row_order(self, grid):
        patches = get_patches(grid, 2, 3, 0, SamplingMethod.SEQUENTIAL)
        assert patches.shape == (4, 6)
        np.testing.assert_array_equal(patches[0], [0, 1, 4, 5, 8, 9])
        np.testing.assert_array_equal(patches[1], [2, 3, 6, 7, 10, 11])

    def test_partial_tiles_dropped(self):
        patches = get_patches(np.ones((7, 5)), 2, 3, 0, SamplingMethod.SEQUENTIAL)
        assert patches.shape == (4, 6)

    def test_round_trip_through_grid(self, grid):
        patches = get_patches(grid, 2, 3, 0, SamplingMethod.SEQUENTIAL)
        np.testing.assert_array_equal(convert_patches(patches, 2, 3, 4), grid)


class TestRandomPatches:
    def test_shape_and_membership(self, grid):
        patches = get_patches(grid, 2, 2, 10, SamplingMethod.RANDOM, seed=1)
        assert patches.shape == (10, 4)
        for p in patches:
            r, c = divmod(int(p[0]), 4)
            np.testing.assert_array_equal(p, grid[r : r + 2, c : c + 2].ravel())

    def test_seed_is_reproducible(self, grid):
        a = get_patches(grid, 2, 2, 5, SamplingMethod.RANDOM, seed=3)
        b = get_patches(grid, 2, 2, 5, SamplingMethod.RANDOM, seed=3)
        np.testing.assert_array_equal(a, b)

    def test_full_width_patch(self, grid):
        patches = get_patches(grid, 4, 1, 5, SamplingMethod.RANDOM)
        assert patches.shape == (5, 4)

    def test_overlapped_pairs(self, grid):
        patches = get_patches(grid, 2, 2, 3, SamplingMethod.OVERLAPPED_RANDOM, seed=2)
        assert patches.shape == (4, 4)
        np.testing.assert_array_equal(patches[1][:2], patches[0][2:])

    def test_overlapped_needs_spare_frame(self):
        with pytest.raises(ValueError):
            get_patches(np.ones((2, 4)), 2, 2, 2, SamplingMethod.OVERLAPPED_RANDOM)

    def test_patch_too_big(self, grid):
        with pytest.raises(ValueError):
            get_patches(grid, 5, 1, 1, SamplingMethod.RANDOM)


class TestBands:
    def test_equal_bands_drop_remainder(self):
        bands = get_freq_band_matrices(np.ones((3, 10)), 3)
        assert [b.shape for b in bands] == [(3, 3)] * 3

    def test_too_many_bands(self):
        with pytest.raises(ValueError):
            get_freq_band_matrices(np.ones((3, 2)), 3)

    def test_arbitrary_band(self, grid):
        np.testing.assert_array_equal(get_arbitrary_freq_band_matrix(grid, 1, 2), grid[:, 1:3])
        with pytest.raises(ValueError):
            get_arbitrary_freq_band_matrix(grid, 2, 4)

    def test_concat(self, grid):
        bands = get_freq_band_matrices(grid, 2)
        np.testing.assert_array_equal(concat_freq_band_matrices(bands), grid)


class TestHelpers:
    def test_stack_requires_equal_lengths(self):
        with pytest.raises(ValueError):
            list_of_2d_arrays_to_one([np.ones((2, 2)), np.ones((3, 2))])
        with pytest.raises(ValueError):
            list_of_2d_arrays_to_one([])

    def test_stack(self):
        assert list_of_2d_arrays_to_one([np.ones((2, 3)), np.zeros((2, 3))]).shape == (4, 3)

    def test_add_row(self):
        out = add_row(np.zeros((2, 3)), 5.0)
        np.testing.assert_array_equal(out[-1], [5.0, 5.0, 5.0])

    def test_incomplete_grid_row_dropped(self):
        tiles = [np.full((1, 2), i) for i in range(3)]
        out = concatenate_grid_of_patches(tiles, 4, 2, 1)
        np.testing.assert_array_equal(out, [[0, 0, 1, 1]])
