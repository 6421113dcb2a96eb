"""Core Module

Numerical building blocks of ecoaudio. Everything here works on numpy
arrays and plain dataclasses; the services and CLI layers sit on top.

Submodules:
    - audio: Audio loading and the AudioRecording container
    - matrix: Array and matrix utilities
    - dsp: SNR, noise profiles, PCA whitening and patch sampling
    - spectrogram: Amplitude, decibel and cepstral sonograms
    - analysis: Acoustic indices, oscillations, long-duration comparison
    - events: Acoustic events and template matching
    - harmonics: Harmonic stack detection
    - edges: Canny edges and local maxima
    - feature_learning: Unsupervised spectrogram feature learning
    - visualize: Image tracks
    - files: Audio file renaming
    - config: TOML configuration
    - logger: Package logging
    - exceptions: Error hierarchy
"""
