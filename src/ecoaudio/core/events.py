"""
Acoustic Events
===============

Time/frequency bounded acoustic events, conversion of score arrays to
events, and "find events like this" (FELT) template matching.

A FELT template is a small trinary matrix read from a text file of ``+``,
``-`` and ``0`` characters. Each line is one spectrogram frame and each
character one frequency bin, lowest frequency first. ``+`` cells expect
energy and ``-`` cells expect silence.

Example:
    >>> from ecoaudio.core.audio import AudioRecording
    >>> from ecoaudio.core.events import find_matching_events, read_chars_to_trinary_matrix
    >>> template = read_chars_to_trinary_matrix("kek_call.txt")
    >>> result = find_matching_events(template, AudioRecording.from_file("swamp.wav"),
    ...                               min_hz=800, max_hz=3500, threshold=4.0)
    >>> print(write_events(result.events, "swamp.wav\\t60.0\\t3"))
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from scipy import ndimage

from ecoaudio.core.audio import AudioRecording
from ecoaudio.core.dsp.snr import DEFAULT_NH_BG_THRESHOLD, NoiseReductionType
from ecoaudio.core.exceptions import TemplateError
from ecoaudio.core.matrix import boolean_runs, filter_moving_average
from ecoaudio.core.spectrogram import SonogramConfig, SpectrogramStandard

logger = logging.getLogger(__name__)

EVENTS_FILE_HEADER = "fname\tduration\tcount"
EVENT_COLUMNS = ("start", "end", "duration", "min_hz", "max_hz", "score", "intensity", "name")

# frames whose background-subtracted energy is below this are not scored when segmenting
SEGMENTATION_THRESHOLD_DB = 3.0


@dataclass
class AcousticEvent:
    """
    An event bounded in time (seconds) and frequency (Hz).

    Attributes:
        start: Start time in seconds from the start of the recording
        end: End time in seconds
        min_hz: Lower frequency bound
        max_hz: Upper frequency bound
        score: Mean detection score over the event
        name: Call or event name
        intensity: Peak score over the event
        score_normalised: Score scaled to [0, 1] for display
        min_bin: Lowest frequency bin of the event, if known
        max_bin: Highest frequency bin of the event, if known
    """

    start: float
    end: float
    min_hz: float
    max_hz: float
    score: float = 0.0
    name: str = ""
    intensity: float = 0.0
    score_normalised: Optional[float] = None
    min_bin: Optional[int] = None
    max_bin: Optional[int] = None

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Event ends ({self.end}) before it starts ({self.start})")
        if self.max_hz < self.min_hz:
            raise ValueError(f"Event max_hz ({self.max_hz}) is below min_hz ({self.min_hz})")

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def bandwidth(self) -> float:
        return self.max_hz - self.min_hz

    def overlaps(self, other: "AcousticEvent") -> bool:
        """True when the two events share both some time and some frequency range."""
        in_time = self.start < other.end and other.start < self.end
        in_freq = self.min_hz <= other.max_hz and other.min_hz <= self.max_hz
        return in_time and in_freq

    def to_line(self) -> str:
        return "\t".join(
            [
                f"{self.start:.3f}",
                f"{self.end:.3f}",
                f"{self.duration:.3f}",
                f"{self.min_hz:.0f}",
                f"{self.max_hz:.0f}",
                f"{self.score:.3f}",
                f"{self.intensity:.3f}",
                self.name,
            ]
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "duration": self.duration,
            "min_hz": self.min_hz,
            "max_hz": self.max_hz,
            "score": self.score,
            "intensity": self.intensity,
            "name": self.name,
            "score_normalised": self.score_normalised,
        }


def write_events(events: List[AcousticEvent], header: str) -> str:
    """
    Tab separated text: the header line, the column names, then one line per event.
    """
    lines = [header, "\t".join(EVENT_COLUMNS)]
    lines.extend(e.to_line() for e in events)
    return "\n".join(lines) + "\n"


def convert_score_array_to_events(
    scores: np.ndarray,
    min_hz: float,
    max_hz: float,
    frames_per_sec: float,
    fbin_width: float,
    threshold: float,
    min_duration: float,
    max_duration: float,
    segment_start_offset: float = 0.0,
    name: str = "",
) -> List[AcousticEvent]:
    """
    Turn runs of scores at or above ``threshold`` into events.

    A run that is still open at the end of the array is closed there. Runs
    whose duration falls outside ``[min_duration, max_duration]`` are
    discarded.

    Args:
        scores: One score per frame
        min_hz: Lower frequency bound given to every event
        max_hz: Upper frequency bound given to every event
        frames_per_sec: Frame rate of the score array
        fbin_width: Width of one frequency bin in Hz
        threshold: Minimum score for a frame to belong to an event
        min_duration: Shortest accepted event in seconds
        max_duration: Longest accepted event in seconds
        segment_start_offset: Seconds added to every event time
        name: Event name

    Returns:
        Events in time order
    """
    s = np.asarray(scores, dtype=np.float64)
    if frames_per_sec <= 0:
        raise ValueError(f"frames_per_sec must be positive, got {frames_per_sec}")

    min_bin = int(round(min_hz / fbin_width)) if fbin_width > 0 else None
    max_bin = int(round(max_hz / fbin_width)) if fbin_width > 0 else None

    events = []
    for start, end in boolean_runs(s >= threshold):
        duration = (end - start) / frames_per_sec
        if duration < min_duration or duration > max_duration:
            continue
        run = s[start:end]
        events.append(
            AcousticEvent(
                start=segment_start_offset + start / frames_per_sec,
                end=segment_start_offset + end / frames_per_sec,
                min_hz=min_hz,
                max_hz=max_hz,
                score=float(run.mean()),
                intensity=float(run.max()),
                name=name,
                min_bin=min_bin,
                max_bin=max_bin,
            )
        )
    return events


# =============================================================================
# FELT template matching
# =============================================================================


def read_chars_to_trinary_matrix(path: Union[str, Path]) -> np.ndarray:
    """
    Read a template of ``+``, ``-`` and ``0`` characters.

    Any other character is read as 0 and logged as a warning.

    Raises:
        FileNotFoundError: If the template file doesn't exist
        TemplateError: If the file is empty or its lines differ in length
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Template file not found: {path}")

    lines = [line.rstrip("\r\n") for line in p.read_text().splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        raise TemplateError(f"Template file is empty: {p.name}")

    cols = len(lines[0])
    m = np.zeros((len(lines), cols))
    values = {"+": 1.0, "-": -1.0, "0": 0.0}
    for r, line in enumerate(lines):
        if len(line) != cols:
            raise TemplateError(f"Template line {r} has {len(line)} characters, expected {cols}: {p.name}")
        for c, char in enumerate(line):
            if char in values:
                m[r, c] = values[char]
            else:
                logger.warning(f"Non-standard character {char!r} at ({r}, {c}) in {p.name}")
    return m


@dataclass
class FeltResult:
    """
    Output of :func:`find_matching_events`.

    Attributes:
        sonogram: Decibel spectrogram the template was matched against
        events: Matching events
        scores: Match score per frame
        threshold: Score threshold used to accept events
    """

    sonogram: SpectrogramStandard
    events: List[AcousticEvent] = field(default_factory=list)
    scores: np.ndarray = field(default_factory=lambda: np.zeros(0))
    threshold: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_count": len(self.events),
            "threshold": self.threshold,
            "duration": self.sonogram.duration,
            "events": [e.to_dict() for e in self.events],
        }


def _fit_template(template: np.ndarray, bin_count: int) -> np.ndarray:
    if template.shape[1] == bin_count:
        return template
    logger.debug(f"Resizing template from {template.shape[1]} to {bin_count} frequency bins")
    zoomed = ndimage.zoom(template, (1.0, bin_count / template.shape[1]), order=0, mode="nearest")
    return zoomed[:, :bin_count]


def template_scores(template: np.ndarray, band: np.ndarray) -> np.ndarray:
    """
    Mean of template-weighted decibels at each frame offset.

    The score at frame ``t`` places the first template row on frame ``t``.
    Offsets where the template overruns the matrix score 0.
    """
    t = np.asarray(template, dtype=np.float64)
    b = np.asarray(band, dtype=np.float64)
    height = t.shape[0]
    active = np.count_nonzero(t)
    scores = np.zeros(b.shape[0])
    if active == 0 or b.shape[0] < height:
        return scores
    if t.shape[1] != b.shape[1]:
        raise TemplateError(f"Template has {t.shape[1]} frequency bins, band has {b.shape[1]}")
    windows = np.lib.stride_tricks.sliding_window_view(b, t.shape)[:, 0]
    valid = windows.shape[0]
    scores[:valid] = (windows * t).sum(axis=(1, 2)) / active
    return scores


def normalise_scores_for_display(scores: np.ndarray, threshold: float) -> np.ndarray:
    """Divide by ``threshold * 4`` and clip to [0, 1], so the threshold displays at 0.25."""
    if threshold <= 0:
        raise ValueError(f"threshold must be positive, got {threshold}")
    return np.clip(np.asarray(scores, dtype=np.float64) / (threshold * 4.0), 0.0, 1.0)


def find_matching_events(
    template: np.ndarray,
    recording: AudioRecording,
    min_hz: int,
    max_hz: int,
    threshold: float,
    frame_overlap: float = 0.5,
    smooth_window: float = 0.0,
    min_duration: float = 0.0,
    max_duration: float = float("inf"),
    dynamic_range: float = 0.0,
    do_segmentation: bool = False,
    window_size: int = 512,
    call_name: str = "",
) -> FeltResult:
    """
    Find events in a recording that look like a trinary template.

    Args:
        template: Trinary matrix (frames x bins) from :func:`read_chars_to_trinary_matrix`
        recording: Recording to search
        min_hz: Lower bound of the band searched
        max_hz: Upper bound of the band searched
        threshold: Minimum smoothed score, in decibels, of a matching frame
        frame_overlap: Spectrogram frame overlap
        smooth_window: Score smoothing window in seconds (0 disables)
        min_duration: Shortest accepted event in seconds
        max_duration: Longest accepted event in seconds
        dynamic_range: Fixed dynamic range for noise reduction in dB;
            0 uses standard noise reduction
        do_segmentation: Only score frames with energy above the background
        window_size: Spectrogram frame size
        call_name: Name given to every event

    Returns:
        FeltResult
    """
    t = np.asarray(template, dtype=np.float64)
    if t.ndim != 2 or t.size == 0:
        raise TemplateError("Template must be a non-empty 2-D matrix")

    if dynamic_range > 0:
        nrt, parameter = NoiseReductionType.FIXED_DYNAMIC_RANGE, dynamic_range
    else:
        nrt, parameter = NoiseReductionType.STANDARD, DEFAULT_NH_BG_THRESHOLD
    config = SonogramConfig(
        window_size=window_size,
        window_overlap=frame_overlap,
        noise_reduction_type=nrt,
        noise_reduction_parameter=parameter,
        source_name=Path(recording.source_path).name if recording.source_path else None,
    )
    sonogram = SpectrogramStandard(config, recording)
    band = sonogram.get_subband(min_hz, max_hz)

    scores = template_scores(_fit_template(t, band.shape[1]), band)
    if do_segmentation:
        quiet = sonogram.decibels_per_frame < SEGMENTATION_THRESHOLD_DB
        scores[quiet[: scores.size]] = 0.0
    if smooth_window > 0:
        width = int(round(smooth_window * sonogram.frames_per_second))
        scores = filter_moving_average(scores, width)

    events = convert_score_array_to_events(
        scores,
        min_hz,
        max_hz,
        sonogram.frames_per_second,
        sonogram.fbin_width,
        threshold,
        min_duration,
        max_duration,
        name=call_name,
    )
    for event in events:
        if threshold > 0:
            event.score_normalised = float(normalise_scores_for_display(np.array([event.score]), threshold)[0])

    logger.info(f"Found {len(events)} events matching template at threshold {threshold:.3f}")
    return FeltResult(sonogram=sonogram, events=events, scores=scores, threshold=threshold)
