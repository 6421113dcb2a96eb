"""
Unit tests for ecoaudio.core.harmonics.
"""

import numpy as np
import pytest

from ecoaudio.core.harmonics import HarmonicParameters, detect_harmonics, detect_harmonics_in_matrix

NYQUIST = 11025
BINS = 256
FPS = 22050 / 256


@pytest.fixture
def harmonic_spectrogram():
    """Silent decibel spectrogram with a 10-bin ripple in frames 30-69."""
    data = np.zeros((100, BINS))
    ripple = 15.0 + 15.0 * np.cos(2 * np.pi * np.arange(BINS) / 10.0)
    data[30:70] = ripple
    return data


class TestHarmonicParameters:
    def test_valid(self):
        params = HarmonicParameters(min_hz=500, max_hz=4000)
        assert params.to_dict()["dct_threshold"] == 0.15

    def test_invalid_band(self):
        with pytest.raises(ValueError):
            HarmonicParameters(min_hz=4000, max_hz=500)

    def test_invalid_durations(self):
        with pytest.raises(ValueError):
            HarmonicParameters(min_hz=0, max_hz=500, min_duration=2.0, max_duration=1.0)

    def test_invalid_gaps(self):
        with pytest.raises(ValueError):
            HarmonicParameters(min_hz=0, max_hz=500, min_formant_gap=900, max_formant_gap=100)


class TestHarmonicsInMatrix:
    def test_quiet_frames_score_zero(self, harmonic_spectrogram):
        db, intensity, index = detect_harmonics_in_matrix(harmonic_spectrogram, 6.0)
        assert db[0] == 0.0
        assert intensity[0] == 0.0
        assert index[0] == 0
        assert intensity[50] > 0.15
        assert index[50] > 3

    def test_narrow_band(self):
        db, intensity, _ = detect_harmonics_in_matrix(np.full((4, 3), 20.0), 6.0)
        np.testing.assert_allclose(db, 20.0)
        assert not intensity.any()


class TestDetectHarmonics:
    def test_event_found(self, harmonic_spectrogram):
        params = HarmonicParameters(min_hz=1000, max_hz=5000)
        scores, gaps, events = detect_harmonics(harmonic_spectrogram, params, NYQUIST, FPS, 22050 / 512)
        assert scores.shape == (100,)
        assert len(events) == 1
        assert events[0].start == pytest.approx(30 / FPS, abs=0.05)
        assert events[0].name == "harmonics"
        assert 300.0 < gaps[50] < 600.0
        assert gaps[10] == 0.0

    def test_gap_outside_range_rejected(self, harmonic_spectrogram):
        params = HarmonicParameters(min_hz=1000, max_hz=5000, min_formant_gap=800, max_formant_gap=1000)
        scores, gaps, events = detect_harmonics(harmonic_spectrogram, params, NYQUIST, FPS, 22050 / 512)
        assert events == []
        assert not gaps.any()

    def test_offset(self, harmonic_spectrogram):
        params = HarmonicParameters(min_hz=1000, max_hz=5000)
        _, _, events = detect_harmonics(
            harmonic_spectrogram, params, NYQUIST, FPS, 22050 / 512, segment_start_offset=10.0
        )
        assert events[0].start > 10.0

    def test_events_thresholded_on_dct_intensity(self, harmonic_spectrogram):
        params = HarmonicParameters(min_hz=1000, max_hz=5000)
        scores, _, events = detect_harmonics(harmonic_spectrogram, params, NYQUIST, FPS, 22050 / 512)
        assert events

        above_peak = HarmonicParameters(min_hz=1000, max_hz=5000, dct_threshold=float(scores.max()) + 0.01)
        _, _, none = detect_harmonics(harmonic_spectrogram, above_peak, NYQUIST, FPS, 22050 / 512)
        assert none == []
