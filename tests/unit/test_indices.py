"""
Unit tests for ecoaudio.core.analysis.indices.
"""

from pathlib import Path

import numpy as np
import pytest

from ecoaudio.core.analysis.indices import (
    SPECTRAL_INDEX_KEYS,
    activity_and_events,
    batch_compute_indices,
    compute_aci,
    compute_indices,
    compute_indices_from_file,
    compute_ndsi,
    frequency_cover,
    spectral_aci,
    spectral_entropy,
    temporal_entropy,
    temporal_indices,
    temporal_spectral_indices,
    write_spectral_index_matrices,
)
from ecoaudio.core.audio import AudioRecording


@pytest.fixture
def frequencies():
    return np.arange(11) * 1000.0


class TestSingleIndices:
    def test_aci_of_steady_spectrum(self):
        np.testing.assert_allclose(spectral_aci(np.ones((10, 4))), 0.0)

    def test_aci_single_frame(self):
        np.testing.assert_array_equal(spectral_aci(np.ones((1, 3))), [0.0, 0.0, 0.0])

    def test_aci_alternating(self):
        a = np.tile([[1.0], [3.0]], (2, 1))
        # |3-1| * 3 / (1+3+1+3)
        assert spectral_aci(a)[0] == pytest.approx(0.75)

    def test_compute_aci_clusters(self, frequencies):
        a = np.ones((10, 11))
        assert compute_aci(a, frequencies) == 0.0

    def test_ndsi_all_biophony(self, frequencies):
        a = np.zeros((5, 11))
        a[:, 5] = 1.0
        ndsi, anthrophony, biophony = compute_ndsi(a, frequencies)
        assert ndsi == 1.0
        assert anthrophony == 0.0
        assert biophony == 5.0

    def test_ndsi_silence(self, frequencies):
        assert compute_ndsi(np.zeros((5, 11)), frequencies) == (0.0, 0.0, 0.0)

    def test_entropy_of_flat_spectrum(self):
        assert spectral_entropy(np.ones((5, 8))) == pytest.approx(1.0)
        assert temporal_entropy(np.ones((8, 5))) == pytest.approx(1.0)

    def test_entropy_of_pure_tone(self):
        a = np.zeros((5, 8))
        a[:, 3] = 1.0
        assert spectral_entropy(a) == 0.0

    def test_activity_and_events(self):
        activity, rate = activity_and_events(np.array([0.0, 5.0, 5.0, 0.0, 5.0]), 5.0)
        assert activity == pytest.approx(0.6)
        assert rate == pytest.approx(2.0)

    def test_frequency_cover(self):
        frequencies = np.array([500.0, 2000.0, 9000.0, 10000.0])
        db = np.array([[10.0, 0.0, 10.0, 0.0], [10.0, 10.0, 0.0, 0.0]])
        high, mid, low = frequency_cover(db, frequencies)
        assert (high, mid, low) == (0.25, 0.5, 1.0)


class TestComputeIndices:
    def test_tone(self, sine_recording):
        result = compute_indices(sine_recording)
        summary = result.summary
        assert summary.duration == pytest.approx(2.0)
        assert 0.0 <= summary.spectral_entropy <= 1.0
        assert -1.0 <= summary.ndsi <= 1.0
        assert np.isfinite(summary.background_noise)
        bins = result.spectral.aci.size
        for key in SPECTRAL_INDEX_KEYS:
            assert result.spectral.get(key).shape == (bins,)

    def test_unknown_spectral_key(self, sine_recording):
        with pytest.raises(ValueError):
            compute_indices(sine_recording).spectral.get("XYZ")

    def test_segment_too_short(self):
        with pytest.raises(ValueError):
            compute_indices(AudioRecording(np.zeros(100), 22050))

    def test_from_file(self, tmp_audio_file):
        result = compute_indices_from_file(tmp_audio_file)
        d = result.to_dict()
        assert d["sample_rate"] == 22050
        assert set(d["spectral"]) == set(SPECTRAL_INDEX_KEYS)


class TestTemporalIndices:
    def test_windows(self, sine_recording):
        df = temporal_indices(sine_recording, window_duration=0.5)
        assert list(df["start_time"]) == [0.0, 0.5, 1.0, 1.5]
        assert "aci" in df.columns

    def test_hop(self, sine_recording):
        df = temporal_indices(sine_recording, window_duration=1.0, hop_duration=0.5)
        assert len(df) == 3

    def test_invalid_window(self, sine_recording):
        with pytest.raises(ValueError):
            temporal_indices(sine_recording, window_duration=0)

    def test_longer_window_than_recording(self, sine_recording):
        assert temporal_indices(sine_recording, window_duration=10.0).empty

    def test_spectral_matrices(self, sine_recording, tmp_path):
        matrices = temporal_spectral_indices(sine_recording, window_duration=1.0)
        assert set(matrices) == set(SPECTRAL_INDEX_KEYS)
        assert matrices["ACI"].shape[0] == 2
        written = write_spectral_index_matrices(matrices, tmp_path, "tone")
        assert sorted(Path(p).name for p in written) == sorted(f"tone.{k}.csv" for k in SPECTRAL_INDEX_KEYS)


class TestBatch:
    def test_batch_with_failure(self, tmp_dir_with_audio_files, tmp_path):
        files = sorted(Path(tmp_dir_with_audio_files).glob("*.wav"))
        bad = tmp_path / "broken.wav"
        bad.write_text("not audio")
        calls = []
        out = tmp_path / "out" / "indices.csv"

        df = batch_compute_indices(
            [*files, bad], max_workers=2, output_csv=out, progress_callback=lambda done, total: calls.append(total)
        )

        assert list(df["success"]) == [True, True, True, False]
        assert df["filepath"].iloc[3] == str(bad)
        assert calls == [4, 4, 4, 4]
        assert out.exists()

    def test_workers_must_be_positive(self):
        with pytest.raises(ValueError):
            batch_compute_indices([], max_workers=0)
