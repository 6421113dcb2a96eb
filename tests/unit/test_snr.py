"""
Unit tests for ecoaudio.core.dsp.snr.
"""

import numpy as np
import pytest

from ecoaudio.core.dsp.snr import (
    SNR,
    NoiseReductionType,
    calculate_freq_band_av_intensity,
    calculate_log_energy_of_signal_frames,
    calculate_modal_background_noise_in_signal,
    calculate_snr_in_freq_band,
    convert_log_energy_to_decibels,
    decibels_in_subband,
    key_to_noise_reduction_type,
    noise_reduce,
    reduce_freq_bins_in_spectrogram,
    remove_neighbourhood_background_noise,
    rms_normalization,
    segment_array_of_intensity_values,
    set_dynamic_range,
    subtract_background_noise_from_waveform_db,
)


@pytest.fixture
def db_spectrogram():
    """Noisy decibel spectrogram (200 frames x 64 bins) with a loud block."""
    rng = np.random.default_rng(1)
    m = rng.normal(-60.0, 2.0, size=(200, 64))
    m[80:120, 20:30] += 30.0
    return m


class TestNoiseReductionKeys:
    @pytest.mark.parametrize(
        "key,expected",
        [
            ("standard", NoiseReductionType.STANDARD),
            ("FlattenAndTrim", NoiseReductionType.FLATTEN_AND_TRIM),
            ("fixed-dynamic-range", NoiseReductionType.FIXED_DYNAMIC_RANGE),
            ("BRIGGS_PERCENTILE", NoiseReductionType.BRIGGS_PERCENTILE),
        ],
    )
    def test_known_keys(self, key, expected):
        assert key_to_noise_reduction_type(key) is expected

    def test_unknown_key_is_none(self):
        assert key_to_noise_reduction_type("bogus") is NoiseReductionType.NONE
        assert key_to_noise_reduction_type(None) is NoiseReductionType.NONE


class TestFrameEnergy:
    def test_full_scale_frames(self):
        frames = np.ones((4, 16))
        np.testing.assert_allclose(calculate_log_energy_of_signal_frames(frames), 0.0)

    def test_silent_frames_clamped(self):
        frames = np.zeros((3, 16))
        np.testing.assert_allclose(calculate_log_energy_of_signal_frames(frames), -8.0)

    def test_frame_ids(self):
        signal = np.concatenate([np.zeros(8), np.ones(8)])
        ids = np.array([[0, 7], [8, 15]])
        energy = calculate_log_energy_of_signal_frames(signal, ids)
        np.testing.assert_allclose(energy, [-8.0, 0.0])

    def test_1d_without_ids_rejected(self):
        with pytest.raises(ValueError):
            calculate_log_energy_of_signal_frames(np.ones(10))

    def test_decibels(self):
        np.testing.assert_allclose(convert_log_energy_to_decibels([-8.0, -1.0]), [-80.0, -10.0])


class TestBandHelpers:
    def test_reduce_freq_bins_last_band_takes_remainder(self):
        out = reduce_freq_bins_in_spectrogram(np.ones((2, 10)), 3)
        np.testing.assert_allclose(out[0], [3.0, 3.0, 4.0])

    def test_reduce_freq_bins_invalid(self):
        with pytest.raises(ValueError):
            reduce_freq_bins_in_spectrogram(np.ones((2, 4)), 5)

    def test_decibels_in_subband_inclusive(self):
        out = decibels_in_subband(np.ones((2, 10)), 200, 400, 100)
        np.testing.assert_allclose(out, [3.0, 3.0])

    def test_band_average_intensity(self):
        out = calculate_freq_band_av_intensity(np.ones((2, 10)), 200, 400, 1000)
        np.testing.assert_allclose(out, [2.0 / 3.0, 2.0 / 3.0])

    def test_segment_intensity_drops_open_run(self):
        values = [0, 5, 5, 0, 5, 5, 5]
        assert segment_array_of_intensity_values(values, 1.0, 2) == [(1, 3)]

    def test_segment_intensity_min_length(self):
        assert segment_array_of_intensity_values([0, 5, 5, 0], 1.0, 4) == []


class TestBackgroundNoise:
    def test_modal_noise_near_mean(self):
        rng = np.random.default_rng(0)
        signal = rng.normal(-50.0, 3.0, size=4000)
        bgn = calculate_modal_background_noise_in_signal(signal, 0.0)
        assert bgn.noise_mode == pytest.approx(-50.0, abs=2.0)
        assert bgn.noise_sd > 0
        assert bgn.snr == pytest.approx(bgn.max_db - bgn.noise_threshold)

    def test_sd_count_raises_threshold(self):
        rng = np.random.default_rng(0)
        signal = rng.normal(-50.0, 3.0, size=4000)
        low = calculate_modal_background_noise_in_signal(signal, 0.0)
        high = calculate_modal_background_noise_in_signal(signal, 2.0)
        assert high.noise_threshold > low.noise_threshold

    def test_waveform_db_truncates(self):
        rng = np.random.default_rng(5)
        db = rng.normal(-60.0, 1.0, size=500)
        db[200:220] = -20.0
        bgn = subtract_background_noise_from_waveform_db(db, 0.0)
        assert (bgn.noise_reduced_signal >= 0).all()
        assert bgn.noise_reduced_signal[210] > 30.0


class TestNoiseReduce:
    def test_none_is_identity(self, db_spectrogram):
        out, profile = noise_reduce(db_spectrogram, NoiseReductionType.NONE, 0.0)
        np.testing.assert_array_equal(out, db_spectrogram)
        assert profile is None

    def test_standard(self, db_spectrogram):
        out, profile = noise_reduce(db_spectrogram, "standard", 2.0)
        assert out.shape == db_spectrogram.shape
        assert profile.shape == (64,)
        assert out.min() >= 0.0
        assert out[100, 25] > out[10, 50]

    def test_modal(self, db_spectrogram):
        out, profile = noise_reduce(db_spectrogram, NoiseReductionType.MODAL, 0.0)
        assert out.min() >= 0.0
        assert profile is not None

    def test_binary(self, db_spectrogram):
        out, _ = noise_reduce(db_spectrogram, NoiseReductionType.BINARY, 2.0)
        assert set(np.unique(out)) <= {0.0, 1.0}

    def test_fixed_dynamic_range(self, db_spectrogram):
        out, _ = noise_reduce(db_spectrogram, NoiseReductionType.FIXED_DYNAMIC_RANGE, 50.0)
        assert out.max() == pytest.approx(50.0)
        assert out.min() >= 0.0

    def test_briggs(self):
        rng = np.random.default_rng(2)
        amplitude = rng.uniform(0.1, 1.0, size=(100, 32))
        out, profile = noise_reduce(amplitude, NoiseReductionType.BRIGGS_PERCENTILE, 20)
        assert out.shape == amplitude.shape
        assert profile is None
        assert out.min() >= 0.0

    @pytest.mark.parametrize(
        "nrt",
        [
            NoiseReductionType.MEAN,
            NoiseReductionType.MEDIAN,
            NoiseReductionType.LOWEST_PERCENTILE,
            NoiseReductionType.SHORT_RECORDING,
        ],
    )
    def test_profile_methods_non_negative(self, db_spectrogram, nrt):
        parameter = 20 if nrt in (NoiseReductionType.LOWEST_PERCENTILE, NoiseReductionType.SHORT_RECORDING) else 2.0
        out, _ = noise_reduce(db_spectrogram, nrt, parameter)
        assert out.shape == db_spectrogram.shape
        assert out.min() >= 0.0

    def test_set_dynamic_range(self):
        out = set_dynamic_range(np.array([[-100.0, 0.0]]), 0.0, 50.0)
        np.testing.assert_allclose(out, [[0.0, 50.0]])

    def test_neighbourhood_disabled_below_threshold(self, db_spectrogram):
        out = remove_neighbourhood_background_noise(db_spectrogram, 0.0)
        np.testing.assert_array_equal(out, db_spectrogram)

    def test_rms_of_zero_matrix(self):
        with pytest.raises(ValueError):
            rms_normalization(np.zeros((2, 2)))


class TestSnrInBand:
    def test_call_region(self):
        data = np.zeros((50, 10))
        data[20:30, 3:6] = 20.0
        stats = calculate_snr_in_freq_band(data, 20, 10, 3, 5, threshold=3.0)
        assert stats.snr == pytest.approx(20.0)
        assert stats.fraction_of_frames_exceeding_threshold == pytest.approx(1.0)
        assert stats.fraction_of_frames_exceeding_one_third_snr == pytest.approx(1.0)

    def test_quiet_region(self):
        stats = calculate_snr_in_freq_band(np.zeros((50, 10)), 0, 10, 0, 9, threshold=3.0)
        assert stats.snr == 0.0
        assert stats.fraction_of_frames_exceeding_threshold == 0.0


class TestFrameSnr:
    def test_loud_frames_raise_snr(self):
        rng = np.random.default_rng(4)
        frames = 0.001 * rng.standard_normal((400, 256))
        frames[150:170] = 0.5 * rng.standard_normal((20, 256))
        snr = SNR.from_frames(frames)
        assert snr.snr > 20.0
        assert (snr.frame_decibels >= 0).all()
        assert snr.max_reference_decibels_wrt_noise == pytest.approx(snr.max_db - snr.min_db)
        assert "noise_subtracted" in snr.to_dict()

    def test_noise_subtracted_is_the_modal_level(self):
        rng = np.random.default_rng(4)
        frames = 0.001 * rng.standard_normal((400, 256))
        frames[150:170] = 0.5 * rng.standard_normal((20, 256))
        db = convert_log_energy_to_decibels(calculate_log_energy_of_signal_frames(frames))
        bgn = subtract_background_noise_from_waveform_db(db, 0.0)

        snr = SNR.from_frames(frames)

        # the mode of -60 dB frames, not the spread around it
        assert snr.noise_subtracted == pytest.approx(bgn.noise_mode)
        assert snr.noise_subtracted < -40.0
        assert snr.noise_range == pytest.approx(snr.min_db - bgn.noise_mode)
