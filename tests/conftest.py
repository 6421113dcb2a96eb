# tests/conftest.py
"""
Global pytest fixtures for ecoaudio tests.
"""

import numpy as np
import pytest


def _write_wav(path, samples, sample_rate):
    import soundfile as sf

    sf.write(str(path), samples.astype(np.float32), sample_rate)
    return str(path)


@pytest.fixture
def sine_samples():
    """Two seconds of a 2 kHz tone in light noise at 22.05 kHz."""
    sr = 22050
    rng = np.random.default_rng(42)
    t = np.arange(2 * sr) / sr
    samples = 0.5 * np.sin(2 * np.pi * 2000 * t) + 0.01 * rng.standard_normal(t.size)
    return samples, sr


@pytest.fixture
def sine_recording(sine_samples):
    from ecoaudio.core.audio import AudioRecording

    samples, sr = sine_samples
    return AudioRecording(samples=samples, sample_rate=sr, source_path="tone.wav")


@pytest.fixture
def noise_recording():
    """Two seconds of quiet white noise."""
    from ecoaudio.core.audio import AudioRecording

    sr = 22050
    rng = np.random.default_rng(7)
    return AudioRecording(samples=0.05 * rng.standard_normal(2 * sr), sample_rate=sr)


@pytest.fixture
def tmp_audio_file(tmp_path, sine_samples):
    """Create a temporary WAV file holding the tone."""
    samples, sr = sine_samples
    return _write_wav(tmp_path / "test_signal.wav", samples, sr)


@pytest.fixture
def tmp_silent_file(tmp_path):
    """One second of silence at 16 kHz."""
    return _write_wav(tmp_path / "silence.wav", np.zeros(16000), 16000)


@pytest.fixture
def tmp_call_file(tmp_path):
    """Three seconds of noise with two loud 3 kHz calls at 0.5s and 2.0s."""
    sr = 22050
    rng = np.random.default_rng(3)
    samples = 0.01 * rng.standard_normal(3 * sr)
    t = np.arange(int(0.3 * sr)) / sr
    call = 0.6 * np.sin(2 * np.pi * 3000 * t)
    for start in (0.5, 2.0):
        i = int(start * sr)
        samples[i : i + call.size] += call
    return _write_wav(tmp_path / "calls.wav", samples, sr)


@pytest.fixture
def tmp_dir_with_audio_files(tmp_path):
    """Create a temporary directory with multiple audio files."""
    audio_dir = tmp_path / "audio"
    audio_dir.mkdir()

    rng = np.random.default_rng(0)
    sr = 22050
    t = np.arange(sr) / sr
    for i in range(3):
        samples = 0.3 * np.sin(2 * np.pi * (1000 + 500 * i) * t) + 0.05 * rng.standard_normal(sr)
        _write_wav(audio_dir / f"test_{i}.wav", samples, sr)

    return str(audio_dir)
