"""
Unit tests for ecoaudio.core.audio.
"""

import numpy as np
import pytest

from ecoaudio.core.audio import AudioRecording, load_audio
from ecoaudio.core.exceptions import AudioLoadError


class TestLoadAudio:
    def test_load_wav(self, tmp_audio_file):
        samples, sr = load_audio(tmp_audio_file)
        assert sr == 22050
        assert samples.ndim == 1
        assert samples.dtype == np.float64
        assert len(samples) == 2 * 22050

    def test_resample(self, tmp_audio_file):
        samples, sr = load_audio(tmp_audio_file, target_sr=11025)
        assert sr == 11025
        assert abs(len(samples) - 22050) <= 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_audio(tmp_path / "missing.wav")

    def test_undecodable_file(self, tmp_path):
        bad = tmp_path / "bad.wav"
        bad.write_bytes(b"not audio at all")
        with pytest.raises(AudioLoadError):
            load_audio(bad)


class TestAudioRecording:
    def test_properties(self, sine_recording):
        assert sine_recording.sample_count == 44100
        assert sine_recording.duration == pytest.approx(2.0)
        assert sine_recording.nyquist == 11025

    def test_from_file(self, tmp_audio_file):
        recording = AudioRecording.from_file(tmp_audio_file)
        assert recording.source_path == tmp_audio_file
        assert recording.sample_rate == 22050

    def test_rejects_stereo(self):
        with pytest.raises(ValueError):
            AudioRecording(np.zeros((10, 2)), 8000)

    def test_rejects_bad_rate(self):
        with pytest.raises(ValueError):
            AudioRecording(np.zeros(10), 0)

    def test_subsegment(self, sine_recording):
        part = sine_recording.get_subsegment(0.5, 1.0)
        assert part.sample_count == 11025
        assert part.sample_rate == sine_recording.sample_rate

    def test_subsegment_clipped_to_end(self, sine_recording):
        part = sine_recording.get_subsegment(1.5, 5.0)
        assert part.duration == pytest.approx(0.5)

    def test_invalid_subsegment(self, sine_recording):
        with pytest.raises(ValueError):
            sine_recording.get_subsegment(3.0, 4.0)
