"""
Acoustic Indices
================

Summary and spectral acoustic indices for segments of a recording.

Summary indices (one value per segment):
- ACI: Acoustic Complexity Index
- ADI: Acoustic Diversity Index
- AEI: Acoustic Evenness Index
- BIO: Bioacoustic Index
- NDSI: Normalized Difference Soundscape Index
- spectral and temporal entropy
- background noise, SNR, activity and events per second
- high, mid and low frequency cover

Spectral indices (one value per frequency bin): ACI, BGN (background
noise), PMN (power minus noise), CVR (cover) and ENT (temporal entropy).

All matrices are frames x bins. Indices are computed on the amplitude and
decibel sonograms of :mod:`ecoaudio.core.spectrogram`.

References:
- Pieretti et al. (2011) - ACI
- Villanueva-Rivera et al. (2011) - ADI, AEI
- Boelman et al. (2007) - BIO
- Kasten et al. (2012) - NDSI
- Towsey et al. (2014) - activity, cover, spectral indices

Example:
    >>> from ecoaudio.core.analysis.indices import compute_indices_from_file, temporal_indices
    >>> result = compute_indices_from_file("dawn_chorus.wav")
    >>> print(f"NDSI: {result.summary.ndsi:.3f}")
    >>> df = temporal_indices(AudioRecording.from_file("24h.wav"), window_duration=60.0)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import librosa
import numpy as np
import pandas as pd

from ecoaudio.core.audio import AudioRecording
from ecoaudio.core.dsp.snr import NoiseReductionType
from ecoaudio.core.matrix import boolean_runs
from ecoaudio.core.spectrogram import AmplitudeSonogram, SonogramConfig, SpectrogramStandard

logger = logging.getLogger(__name__)

# dB above background for a frame or cell to count as active
ACTIVITY_THRESHOLD_DB = 3.0

LOW_FREQ_BOUND = 1000
MID_FREQ_BOUND = 8000

ANTHROPHONY_BAND = (1000.0, 2000.0)
BIOPHONY_BAND = (2000.0, 8000.0)

SPECTRAL_INDEX_KEYS = ("ACI", "BGN", "PMN", "CVR", "ENT")


@dataclass
class SummaryIndices:
    """
    Summary indices of one segment.

    Attributes:
        start_offset: Segment start within the source recording (seconds)
        duration: Segment duration in seconds
        aci: Acoustic Complexity Index
        adi: Acoustic Diversity Index
        aei: Acoustic Evenness Index
        bio: Bioacoustic Index
        ndsi: Normalized Difference Soundscape Index
        anthrophony: Energy in the anthrophony band
        biophony: Energy in the biophony band
        spectral_entropy: Normalised entropy of the mean power spectrum
        temporal_entropy: Normalised entropy of the frame energy envelope
        background_noise: Modal frame decibels (dB)
        snr: Maximum frame decibels above the background
        activity: Fraction of frames above the activity threshold
        events_per_second: Runs of active frames per second
        high_freq_cover: Fraction of active cells above 8 kHz
        mid_freq_cover: Fraction of active cells in 1-8 kHz
        low_freq_cover: Fraction of active cells below 1 kHz
    """

    start_offset: float
    duration: float
    aci: float
    adi: float
    aei: float
    bio: float
    ndsi: float
    anthrophony: float
    biophony: float
    spectral_entropy: float
    temporal_entropy: float
    background_noise: float
    snr: float
    activity: float
    events_per_second: float
    high_freq_cover: float
    mid_freq_cover: float
    low_freq_cover: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SpectralIndices:
    """Per-bin index vectors of one segment, keyed as in :data:`SPECTRAL_INDEX_KEYS`."""

    aci: np.ndarray
    bgn: np.ndarray
    pmn: np.ndarray
    cvr: np.ndarray
    ent: np.ndarray

    def get(self, key: str) -> np.ndarray:
        key = key.upper()
        if key not in SPECTRAL_INDEX_KEYS:
            raise ValueError(f"Unknown spectral index: {key}")
        return getattr(self, key.lower())

    def to_dict(self) -> Dict[str, List[float]]:
        return {key: self.get(key).tolist() for key in SPECTRAL_INDEX_KEYS}


@dataclass
class IndexCalculationResult:
    summary: SummaryIndices
    spectral: SpectralIndices
    sample_rate: int
    source_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": self.source_path,
            "sample_rate": self.sample_rate,
            "summary": self.summary.to_dict(),
            "spectral": self.spectral.to_dict(),
        }


# =============================================================================
# Single indices
# =============================================================================


def _bin_frequencies(bin_count: int, fbin_width: float) -> np.ndarray:
    return np.arange(bin_count) * fbin_width


def _band_columns(frequencies: np.ndarray, low: float, high: float) -> np.ndarray:
    return np.nonzero((frequencies >= low) & (frequencies <= high))[0]


def _normalised_entropy(values: np.ndarray) -> float:
    """Shannon entropy of a non-negative vector divided by its maximum, log2(n)."""
    v = np.asarray(values, dtype=np.float64)
    total = v.sum()
    if v.size < 2 or total <= 0:
        return 0.0
    p = v[v > 0] / total
    return float(-np.sum(p * np.log2(p)) / np.log2(v.size))


def spectral_aci(amplitude: np.ndarray) -> np.ndarray:
    """
    Acoustic complexity of each frequency bin.

    Sum of absolute differences between consecutive frames divided by the
    bin's total amplitude.
    """
    a = np.asarray(amplitude, dtype=np.float64)
    if a.shape[0] < 2:
        return np.zeros(a.shape[1])
    diff = np.abs(np.diff(a, axis=0)).sum(axis=0)
    total = a.sum(axis=0)
    return np.divide(diff, total, out=np.zeros_like(diff), where=total > 0)


def compute_aci(amplitude: np.ndarray, frequencies: np.ndarray, min_freq: float = 0.0, max_freq: Optional[float] = None, j: int = 5) -> float:
    """
    Acoustic Complexity Index, summed over clusters of ``j`` frames.

    Args:
        amplitude: Amplitude spectrogram (frames x bins)
        frequencies: Centre frequency of each bin in Hz
        min_freq: Lowest frequency considered
        max_freq: Highest frequency considered (default: all)
        j: Frames per temporal cluster
    """
    max_freq = frequencies[-1] if max_freq is None else max_freq
    cols = _band_columns(frequencies, min_freq, max_freq)
    if cols.size == 0 or amplitude.shape[0] < 2:
        return 0.0

    band = amplitude[:, cols]
    total = 0.0
    for start in range(0, (band.shape[0] // j) * j, j):
        total += float(spectral_aci(band[start : start + j]).sum())
    return total


def _band_proportions(db: np.ndarray, frequencies: np.ndarray, max_freq: float, freq_step: float, db_threshold: float) -> np.ndarray:
    proportions = []
    for i in range(int(max_freq / freq_step)):
        cols = _band_columns(frequencies, i * freq_step, (i + 1) * freq_step)
        proportions.append(float(np.mean(db[:, cols] > db_threshold)) if cols.size else 0.0)
    return np.asarray(proportions)


def compute_adi(
    amplitude: np.ndarray,
    frequencies: np.ndarray,
    max_freq: float = 10000.0,
    freq_step: float = 1000.0,
    db_threshold: float = -50.0,
) -> float:
    """Acoustic Diversity Index: Shannon diversity of band occupancy."""
    db = librosa.amplitude_to_db(amplitude, ref=np.max)
    proportions = _band_proportions(db, frequencies, max_freq, freq_step, db_threshold)
    proportions = proportions[proportions > 0]
    if proportions.size == 0:
        return 0.0
    p = proportions / proportions.sum()
    return float(-np.sum(p * np.log(p)))


def compute_aei(
    amplitude: np.ndarray,
    frequencies: np.ndarray,
    max_freq: float = 10000.0,
    freq_step: float = 1000.0,
    db_threshold: float = -50.0,
) -> float:
    """Acoustic Evenness Index: Gini coefficient of band occupancy."""
    db = librosa.amplitude_to_db(amplitude, ref=np.max)
    proportions = np.sort(_band_proportions(db, frequencies, max_freq, freq_step, db_threshold))
    n = proportions.size
    if n == 0 or proportions.sum() == 0:
        return 0.0
    index = np.arange(1, n + 1)
    return float(np.sum((2 * index - n - 1) * proportions) / (n * proportions.sum()))


def compute_bio(
    amplitude: np.ndarray, frequencies: np.ndarray, min_freq: float = 2000.0, max_freq: float = 8000.0
) -> float:
    """Bioacoustic Index: area of the mean dB spectrum above its minimum, in kHz dB."""
    cols = _band_columns(frequencies, min_freq, max_freq)
    if cols.size == 0:
        return 0.0
    mean_spectrum = librosa.amplitude_to_db(amplitude[:, cols], ref=np.max).mean(axis=0)
    normalised = mean_spectrum - mean_spectrum.min()
    resolution = frequencies[1] - frequencies[0] if frequencies.size > 1 else 1.0
    return float(normalised[normalised > 0].sum() * resolution / 1000.0)


def compute_ndsi(
    amplitude: np.ndarray,
    frequencies: np.ndarray,
    anthrophony_band: Tuple[float, float] = ANTHROPHONY_BAND,
    biophony_band: Tuple[float, float] = BIOPHONY_BAND,
) -> Tuple[float, float, float]:
    """
    Normalized Difference Soundscape Index.

    Returns:
        Tuple of (NDSI in [-1, 1], anthrophony energy, biophony energy)
    """
    anthro_cols = _band_columns(frequencies, *anthrophony_band)
    bio_cols = _band_columns(frequencies, *biophony_band)
    if anthro_cols.size == 0 or bio_cols.size == 0:
        return 0.0, 0.0, 0.0

    power = amplitude * amplitude
    anthrophony = float(power[:, anthro_cols].sum())
    biophony = float(power[:, bio_cols].sum())
    total = anthrophony + biophony
    if total == 0:
        return 0.0, 0.0, 0.0
    return (biophony - anthrophony) / total, anthrophony, biophony


def spectral_entropy(amplitude: np.ndarray) -> float:
    """Normalised entropy of the mean power spectrum; 1 for a flat spectrum."""
    return _normalised_entropy(np.mean(amplitude * amplitude, axis=0))


def temporal_entropy(amplitude: np.ndarray) -> float:
    """Normalised entropy of frame energies; 1 for a constant level."""
    return _normalised_entropy(np.sum(amplitude * amplitude, axis=1))


def activity_and_events(frame_decibels: np.ndarray, frames_per_second: float, threshold: float = ACTIVITY_THRESHOLD_DB) -> Tuple[float, float]:
    """
    Fraction of active frames and the rate of runs of active frames.

    Args:
        frame_decibels: Frame decibels with the background removed
        frames_per_second: Frame rate
        threshold: Decibels above background for a frame to be active
    """
    active = np.asarray(frame_decibels) >= threshold
    if active.size == 0:
        return 0.0, 0.0
    duration = active.size / frames_per_second
    return float(active.mean()), len(boolean_runs(active)) / duration


def frequency_cover(
    decibels: np.ndarray,
    frequencies: np.ndarray,
    threshold: float = ACTIVITY_THRESHOLD_DB,
    low_bound: float = LOW_FREQ_BOUND,
    mid_bound: float = MID_FREQ_BOUND,
) -> Tuple[float, float, float]:
    """
    Fraction of active cells in the high, mid and low frequency bands.

    Args:
        decibels: Noise-reduced decibel spectrogram
        frequencies: Centre frequency of each bin
        threshold: Decibels for a cell to count as active
        low_bound: Upper edge (Hz) of the low band
        mid_bound: Upper edge (Hz) of the mid band
    """
    active = np.asarray(decibels) >= threshold

    def cover(cols: np.ndarray) -> float:
        return float(active[:, cols].mean()) if cols.size else 0.0

    low = cover(np.nonzero(frequencies < low_bound)[0])
    mid = cover(np.nonzero((frequencies >= low_bound) & (frequencies < mid_bound))[0])
    high = cover(np.nonzero(frequencies >= mid_bound)[0])
    return high, mid, low


def compute_spectral_indices(amplitude: np.ndarray, noise_reduced: np.ndarray, noise_profile: np.ndarray) -> SpectralIndices:
    """Per-bin indices from the amplitude and noise-reduced decibel spectrograms."""
    ent = np.array([_normalised_entropy(col * col) for col in amplitude.T])
    return SpectralIndices(
        aci=spectral_aci(amplitude),
        bgn=np.asarray(noise_profile, dtype=np.float64),
        pmn=noise_reduced.mean(axis=0),
        cvr=(noise_reduced >= ACTIVITY_THRESHOLD_DB).mean(axis=0),
        ent=ent,
    )


# =============================================================================
# Segments and files
# =============================================================================


def compute_indices(
    recording: AudioRecording,
    window_size: int = 512,
    start_offset: float = 0.0,
    activity_threshold: float = ACTIVITY_THRESHOLD_DB,
    low_freq_bound: float = LOW_FREQ_BOUND,
    mid_freq_bound: float = MID_FREQ_BOUND,
    bio_band: Tuple[float, float] = BIOPHONY_BAND,
) -> IndexCalculationResult:
    """
    Summary and spectral indices of one recording segment.

    Args:
        recording: Audio segment
        window_size: FFT window; frames do not overlap
        start_offset: Segment start within the source recording
        activity_threshold: Decibels above background for activity and cover
        low_freq_bound: Upper edge (Hz) of the low frequency cover band
        mid_freq_bound: Upper edge (Hz) of the mid frequency cover band
        bio_band: Band (Hz) of the Bioacoustic Index

    Raises:
        ValueError: If the segment is shorter than one window
    """
    if recording.sample_count < window_size:
        raise ValueError(
            f"Segment of {recording.sample_count} samples is shorter than the {window_size} sample window"
        )

    config = SonogramConfig(
        window_size=window_size,
        window_overlap=0.0,
        noise_reduction_type=NoiseReductionType.MODAL,
        source_name=recording.source_path,
    )
    amplitude_sonogram = AmplitudeSonogram(config, recording)
    decibel_sonogram = SpectrogramStandard.from_amplitude(amplitude_sonogram)
    amplitude = amplitude_sonogram.data
    frequencies = _bin_frequencies(amplitude.shape[1], amplitude_sonogram.fbin_width)

    ndsi, anthrophony, biophony = compute_ndsi(amplitude, frequencies)
    activity, events_per_second = activity_and_events(
        amplitude_sonogram.decibels_per_frame, amplitude_sonogram.frames_per_second, activity_threshold
    )
    high, mid, low = frequency_cover(
        decibel_sonogram.data, frequencies, activity_threshold, low_freq_bound, mid_freq_bound
    )
    snr_data = amplitude_sonogram.snr_data

    summary = SummaryIndices(
        start_offset=start_offset,
        duration=recording.duration,
        aci=float(spectral_aci(amplitude).mean()),
        adi=compute_adi(amplitude, frequencies),
        aei=compute_aei(amplitude, frequencies),
        bio=compute_bio(amplitude, frequencies, *bio_band),
        ndsi=ndsi,
        anthrophony=anthrophony,
        biophony=biophony,
        spectral_entropy=spectral_entropy(amplitude),
        temporal_entropy=temporal_entropy(amplitude),
        background_noise=float(snr_data.noise_subtracted),
        snr=float(snr_data.snr),
        activity=activity,
        events_per_second=events_per_second,
        high_freq_cover=high,
        mid_freq_cover=mid,
        low_freq_cover=low,
    )

    profile = decibel_sonogram.modal_noise_profile
    noise_profile = profile if profile is not None else np.zeros(amplitude.shape[1])
    spectral = compute_spectral_indices(amplitude, decibel_sonogram.data, noise_profile)
    return IndexCalculationResult(summary, spectral, recording.sample_rate, recording.source_path)


def compute_indices_from_file(filepath: Union[str, Path], **kwargs) -> IndexCalculationResult:
    """
    Compute all indices of an audio file as one segment.

    Args:
        filepath: Path to the audio file
        **kwargs: Passed to :func:`compute_indices`
    """
    return compute_indices(AudioRecording.from_file(filepath), **kwargs)


def _segments(recording: AudioRecording, window_duration: float, hop_duration: Optional[float]):
    if window_duration <= 0:
        raise ValueError(f"window_duration must be positive, got {window_duration}")
    hop = window_duration if hop_duration is None else hop_duration
    if hop <= 0:
        raise ValueError(f"hop_duration must be positive, got {hop}")

    window_samples = int(window_duration * recording.sample_rate)
    hop_samples = int(hop * recording.sample_rate)
    position = 0
    while position + window_samples <= recording.sample_count:
        segment = AudioRecording(
            recording.samples[position : position + window_samples], recording.sample_rate, recording.source_path
        )
        yield position / recording.sample_rate, segment
        position += hop_samples


def temporal_indices(
    recording: AudioRecording,
    window_duration: float = 60.0,
    hop_duration: Optional[float] = None,
    **kwargs,
) -> pd.DataFrame:
    """
    Summary indices of consecutive windows of a long recording.

    A trailing partial window is ignored.

    Args:
        recording: The recording
        window_duration: Window length in seconds (one minute by default)
        hop_duration: Seconds between window starts (default: window_duration)
        **kwargs: Passed to :func:`compute_indices`

    Returns:
        DataFrame with ``start_time`` and ``end_time`` followed by the
        summary indices, one row per window
    """
    rows = []
    for start, segment in _segments(recording, window_duration, hop_duration):
        summary = compute_indices(segment, start_offset=start, **kwargs).summary
        row = {"start_time": start, "end_time": start + segment.duration}
        row.update(summary.to_dict())
        rows.append(row)

    if not rows:
        logger.warning(f"Recording of {recording.duration:.1f}s is shorter than one {window_duration}s window")
    return pd.DataFrame(rows)


def temporal_spectral_indices(
    recording: AudioRecording,
    window_duration: float = 60.0,
    **kwargs,
) -> Dict[str, pd.DataFrame]:
    """
    Spectral index matrices of consecutive windows.

    Returns:
        One DataFrame per index key; rows are windows (indexed by start
        time) and columns frequency bins
    """
    vectors: Dict[str, List[np.ndarray]] = {key: [] for key in SPECTRAL_INDEX_KEYS}
    starts = []
    for start, segment in _segments(recording, window_duration, None):
        spectral = compute_indices(segment, start_offset=start, **kwargs).spectral
        starts.append(start)
        for key in SPECTRAL_INDEX_KEYS:
            vectors[key].append(spectral.get(key))

    matrices = {}
    for key, rows in vectors.items():
        df = pd.DataFrame(np.vstack(rows) if rows else np.empty((0, 0)))
        df.index = pd.Index(starts, name="start_time")
        matrices[key] = df
    return matrices


def write_spectral_index_matrices(matrices: Dict[str, pd.DataFrame], output_dir: Union[str, Path], stem: str) -> List[str]:
    """Write each matrix to ``<output_dir>/<stem>.<KEY>.csv``."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for key, df in matrices.items():
        path = out / f"{stem}.{key}.csv"
        df.to_csv(path)
        written.append(str(path))
    return written


def _compute_row(filepath: Union[str, Path], kwargs: Dict[str, Any]) -> Dict[str, Any]:
    row: Dict[str, Any] = {"filepath": str(filepath)}
    try:
        row.update(compute_indices_from_file(filepath, **kwargs).summary.to_dict())
        row["success"] = True
    except Exception as e:
        logger.warning(f"Index calculation failed for {filepath}: {e}")
        row["success"] = False
        row["error"] = str(e)
    return row


def batch_compute_indices(
    filepaths: Sequence[Union[str, Path]],
    max_workers: int = 1,
    output_csv: Optional[Union[str, Path]] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    **kwargs,
) -> pd.DataFrame:
    """
    Summary indices of many files.

    Files that fail are reported with ``success`` False and an ``error``
    message; the batch continues.

    Args:
        filepaths: Audio files
        max_workers: Worker threads
        output_csv: Optional CSV path for the results
        progress_callback: Called with (completed, total) after each file
        **kwargs: Passed to :func:`compute_indices`

    Returns:
        DataFrame with one row per file, in input order
    """
    if max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {max_workers}")

    total = len(filepaths)
    rows: List[Optional[Dict[str, Any]]] = [None] * total
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(_compute_row, path, kwargs): i for i, path in enumerate(filepaths)}
        for completed, future in enumerate(futures, 1):
            rows[futures[future]] = future.result()
            if progress_callback:
                progress_callback(completed, total)

    df = pd.DataFrame(rows)
    if output_csv is not None:
        Path(output_csv).parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_csv, index=False)
        logger.info(f"Wrote indices for {total} files to {output_csv}")
    return df
