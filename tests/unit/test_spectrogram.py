"""
Unit tests for ecoaudio.core.spectrogram.
"""

import numpy as np
import pytest

from ecoaudio.core.dsp.snr import NoiseReductionType
from ecoaudio.core.spectrogram import (
    AmplitudeSonogram,
    MfccConfig,
    SonogramConfig,
    SpectrogramCepstral,
    SpectrogramStandard,
    TriAvSonogram,
    decibel_spectra,
    frame_ids,
    get_all_sonograms,
    get_frames,
    tri_av_vectors,
)


class TestSonogramConfig:
    def test_defaults(self):
        config = SonogramConfig()
        assert config.window_step == 256
        assert config.freq_bin_count == 256
        assert config.fft_bin_count == 257
        assert config.noise_reduction_type is NoiseReductionType.NONE

    def test_window_size_must_be_power_of_two(self):
        with pytest.raises(ValueError):
            SonogramConfig(window_size=500)

    def test_overlap_range(self):
        with pytest.raises(ValueError):
            SonogramConfig(window_overlap=1.0)

    def test_unknown_window(self):
        with pytest.raises(ValueError):
            SonogramConfig(window_function="kaiser-bessel")

    def test_string_noise_reduction(self):
        config = SonogramConfig(noise_reduction_type="modal")
        assert config.noise_reduction_type is NoiseReductionType.MODAL

    def test_from_dict_round_trip(self):
        config = SonogramConfig.from_dict(
            {"window_size": 1024, "window_overlap": 0.25, "noise_reduction_type": "standard", "cc_count": 8}
        )
        assert config.window_size == 1024
        assert config.window_step == 768
        assert config.mfcc_config.cc_count == 8
        assert config.to_dict()["noise_reduction_type"] == "standard"

    def test_from_config_with_overrides(self):
        from ecoaudio.core.config import get_default_config

        defaults = get_default_config()
        assert SonogramConfig.from_config(defaults).noise_reduction_type is NoiseReductionType.STANDARD

        config = SonogramConfig.from_config(defaults, window_size=1024, noise_reduction_type=None)
        assert config.window_size == 1024
        assert config.noise_reduction_type is NoiseReductionType.STANDARD
        assert config.noise_reduction_parameter == 2.0

    def test_mfcc_cc_count(self):
        with pytest.raises(ValueError):
            MfccConfig(filterbank_count=8, cc_count=9)


class TestFraming:
    def test_frame_ids(self):
        ids = frame_ids(1024, 512, 256)
        np.testing.assert_array_equal(ids, [[0, 511], [256, 767], [512, 1023]])

    def test_partial_frame_dropped(self):
        assert frame_ids(1100, 512, 256).shape == (3, 2)

    def test_short_signal(self):
        with pytest.raises(ValueError):
            frame_ids(100, 512, 256)

    def test_get_frames(self):
        frames = get_frames(np.arange(8), 4, 2)
        np.testing.assert_array_equal(frames, [[0, 1, 2, 3], [2, 3, 4, 5], [4, 5, 6, 7]])

    def test_decibel_floor(self):
        db = decibel_spectra(np.zeros((1, 5)), 1.0, 1, 1e-5)
        np.testing.assert_allclose(db, -100.0)


class TestAmplitudeSonogram:
    def test_shape(self, sine_recording):
        sonogram = AmplitudeSonogram(SonogramConfig(), sine_recording)
        assert sonogram.frame_count == 155
        assert sonogram.data.shape == (155, 257)
        assert sonogram.history == ["amplitude"]

    def test_peak_at_tone(self, sine_recording):
        sonogram = AmplitudeSonogram(SonogramConfig(), sine_recording)
        peak = int(np.argmax(sonogram.data.mean(axis=0)))
        assert abs(peak - sonogram.frequency_bin_for_hz(2000)) <= 1

    def test_timing(self, sine_recording):
        sonogram = AmplitudeSonogram(SonogramConfig(), sine_recording)
        assert sonogram.nyquist == 11025
        assert sonogram.frames_per_second == pytest.approx(22050 / 256)
        assert sonogram.fbin_width == pytest.approx(22050 / 512)
        assert sonogram.frame_times()[1] == pytest.approx(256 / 22050)

    def test_step_and_decibel_aliases(self, sine_recording):
        sonogram = AmplitudeSonogram(SonogramConfig(), sine_recording)
        assert sonogram.frame_step == pytest.approx(256 / 22050)
        assert sonogram.frame_step == sonogram.frame_step_duration
        assert sonogram.decibels is sonogram.decibels_per_frame
        assert sonogram.decibels.shape == (sonogram.frame_count,)

    def test_frequency_bounds(self, sine_recording):
        sonogram = AmplitudeSonogram(SonogramConfig(), sine_recording)
        lo, hi = sonogram.get_frequency_bounds(1000, 3000)
        assert (lo, hi) == (23, 70)
        assert sonogram.get_subband(1000, 3000).shape == (155, 48)
        with pytest.raises(ValueError):
            sonogram.get_frequency_bounds(3000, 1000)

    def test_snr_data(self, sine_recording):
        sonogram = AmplitudeSonogram(SonogramConfig(), sine_recording)
        assert sonogram.decibels_per_frame.shape == (155,)
        assert sonogram.decibels_normalised.max() <= 1.0


class TestSpectrogramStandard:
    def test_history(self, sine_recording):
        sonogram = SpectrogramStandard(SonogramConfig(), sine_recording)
        assert sonogram.history == ["decibels", "noise_reduced:none"]
        assert sonogram.modal_noise_profile is None

    def test_from_amplitude_matches(self, sine_recording):
        config = SonogramConfig(noise_reduction_type="standard", noise_reduction_parameter=2.0)
        direct = SpectrogramStandard(config, sine_recording)
        derived = SpectrogramStandard.from_amplitude(AmplitudeSonogram(config, sine_recording))
        np.testing.assert_allclose(direct.data, derived.data)
        assert derived.frame_count == direct.frame_count

    def test_noise_reduced(self, noise_recording):
        config = SonogramConfig(noise_reduction_type="modal")
        sonogram = SpectrogramStandard(config, noise_recording)
        assert sonogram.data.min() >= 0.0
        assert sonogram.modal_noise_profile.shape == (257,)
        assert sonogram.snr_data.modal_noise_profile is sonogram.modal_noise_profile


class TestCepstral:
    def test_vector_width(self, sine_recording):
        sonogram = SpectrogramCepstral(SonogramConfig(), sine_recording)
        assert sonogram.data.shape == (155, 39)

    def test_without_deltas(self, sine_recording):
        config = SonogramConfig(mfcc_config=MfccConfig(include_delta=False, include_double_delta=False))
        sonogram = SpectrogramCepstral(config, sine_recording)
        assert sonogram.data.shape[1] == 13

    def test_mel_scale(self, sine_recording):
        config = SonogramConfig(do_mel_scale=True, mfcc_config=MfccConfig(do_mel_scale=True))
        sonogram = SpectrogramCepstral(config, sine_recording)
        assert sonogram.data.shape == (155, 39)
        assert np.isfinite(sonogram.data).all()

    def test_filter_bank_too_large(self, sine_recording):
        with pytest.raises(ValueError):
            SpectrogramCepstral(SonogramConfig(window_size=64), sine_recording)

    def test_tri_av_sonogram(self, sine_recording):
        sonogram = TriAvSonogram(SonogramConfig(delta_t=2), sine_recording)
        assert sonogram.data.shape == (155, 117)
        assert not sonogram.data[:2].any()
        assert not sonogram.data[-2:].any()

    def test_tri_av_vectors(self):
        m = np.arange(5, dtype=float).reshape(5, 1)
        out = tri_av_vectors(m, 1)
        np.testing.assert_array_equal(out[2], [1.0, 2.0, 3.0])
        assert not out[0].any()

    def test_get_all_sonograms(self, sine_recording):
        config = SonogramConfig(noise_reduction_type="standard", noise_reduction_parameter=2.0)
        sonogram, cepstrogram, noise, noise_band = get_all_sonograms(sine_recording, config, 1000, 3000)
        assert noise.shape == (257,)
        assert noise_band.shape == (48,)
        assert cepstrogram.frame_count == sonogram.frame_count
