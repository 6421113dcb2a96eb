"""
Image Tracks
============

Horizontal strips drawn under a spectrogram image: frame decibels,
segmentation state, detection scores, waveform envelope and a time scale.

Every track is a ``uint8`` RGB array of shape (height, width, 3). Tracks
are composed into one image with :func:`stack_tracks`; writing images to
files is left to the caller.

Example:
    >>> from ecoaudio.core.visualize.image_track import get_decibel_track, get_score_track, stack_tracks
    >>> db = get_decibel_track(sonogram).draw(width=sonogram.frame_count)
    >>> scores = get_score_track(result.scores, 0.0, 1.0, 0.25).draw(width=sonogram.frame_count)
    >>> image = stack_tracks([db, scores])
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:
    from ecoaudio.core.spectrogram.sonogram import BaseSonogram

logger = logging.getLogger(__name__)

DEFAULT_HEIGHT = 30
HEIGHT_OF_TIME_SCALE = 15
SYLLABLES_TRACK_HEIGHT = 10
ENVELOPE_TRACK_HEIGHT = 40
SCORE_TRACK_HEIGHT = 40

# endpoint detection thresholds in dB above background
K1_THRESHOLD_DB = 3.5
K2_THRESHOLD_DB = 6.0

Colour = Tuple[int, int, int]

WHITE: Colour = (255, 255, 255)
BLACK: Colour = (0, 0, 0)
LIGHT_GRAY: Colour = (211, 211, 211)
BACKGROUND_GRAY: Colour = (235, 235, 235)
GREEN: Colour = (0, 128, 0)
RED: Colour = (255, 0, 0)
ORANGE: Colour = (255, 165, 0)
ORANGE_RED: Colour = (255, 69, 0)
LIME: Colour = (0, 255, 0)
PALE_BLUE: Colour = (10, 200, 255)

TRACK_COLOURS: List[Colour] = [
    WHITE,
    RED,
    ORANGE,
    (0, 255, 255),
    ORANGE_RED,
    (255, 192, 203),
    (250, 128, 114),
    (255, 99, 71),
    (139, 0, 0),
    (128, 0, 128),
    (0, 0, 255),
    (138, 43, 226),
    (95, 158, 160),
    (210, 105, 30),
    (220, 20, 60),
    (0, 0, 139),
]

SEGMENTATION_STATE_COLOURS: List[Colour] = [WHITE, GREEN, RED]


class TrackType(Enum):
    NONE = "none"
    DECIBELS = "decibels"
    WAVE_ENVELOPE = "wave_envelope"
    SEGMENTATION = "segmentation"
    SYLLABLES = "syllables"
    SCORE_ARRAY = "score_array"
    TIME_TICS = "time_tics"


TRACK_HEIGHTS: Dict[TrackType, int] = {
    TrackType.TIME_TICS: HEIGHT_OF_TIME_SCALE,
    TrackType.SYLLABLES: SYLLABLES_TRACK_HEIGHT,
    TrackType.SCORE_ARRAY: SCORE_TRACK_HEIGHT,
    TrackType.DECIBELS: DEFAULT_HEIGHT,
    TrackType.WAVE_ENVELOPE: ENVELOPE_TRACK_HEIGHT,
    TrackType.SEGMENTATION: DEFAULT_HEIGHT,
}


def blank_track(width: int, height: int, colour: Colour = WHITE) -> np.ndarray:
    image = np.empty((height, width, 3), dtype=np.uint8)
    image[:, :] = colour
    return image


def _bar_top(height: int, fraction: float) -> int:
    """Row at which a bar of ``fraction`` of the track height starts."""
    top = height - 1 - int(height * fraction)
    return min(max(top, 0), height)


# =============================================================================
# Drawing
# =============================================================================


def draw_decibel_track(data: Sequence[float], width: int, k1: float = -1.0, k2: float = -1.0) -> np.ndarray:
    """
    Bars of normalised frame decibels, one column per group of frames.

    Threshold lines are drawn at ``k1`` (orange) and ``k2`` (lime) when both
    lie in [0, 1].
    """
    values = np.asarray(data, dtype=np.float64)
    height = DEFAULT_HEIGHT
    image = blank_track(width, height)
    if values.size == 0:
        return image

    step = max(1, values.size // width)
    for x in range(width):
        chunk = values[x * step : (x + 1) * step]
        if chunk.size == 0:
            break
        image[_bar_top(height, float(chunk.max())) :, x] = BLACK

    if 0.0 <= k1 <= 1.0 and 0.0 <= k2 <= 1.0:
        image[min(height - int(height * k1), height - 1), :] = ORANGE
        image[min(height - int(height * k2), height - 1), :] = LIME
    return image


def segmentation_states(decibels: np.ndarray, k1: float = K1_THRESHOLD_DB, k2: float = K2_THRESHOLD_DB) -> np.ndarray:
    """0 for silence, 1 for frames above ``k1`` and 2 for frames above ``k2``."""
    db = np.asarray(decibels, dtype=np.float64)
    states = np.zeros(db.size, dtype=np.int64)
    states[db >= k1] = 1
    states[db >= k2] = 2
    return states


def draw_segmentation_track(
    data: Sequence[float], states: Sequence[int], width: int, k1: float = -1.0, k2: float = -1.0
) -> np.ndarray:
    """Decibel track with a four pixel strip of segmentation state colours along its top."""
    image = draw_decibel_track(data, width, k1, k2)
    state_values = np.asarray(states, dtype=np.int64)
    step = max(1, len(data) // width) if len(data) else 1
    for x in range(width):
        location = x * step
        if location >= state_values.size:
            break
        image[1:5, x] = SEGMENTATION_STATE_COLOURS[int(state_values[location]) % len(SEGMENTATION_STATE_COLOURS)]

    image[0, :] = BLACK
    image[-1, :] = BLACK
    image[:, 0] = BLACK
    image[:, -1] = BLACK
    return image


def draw_score_track(
    scores: Sequence[float],
    width: int,
    score_min: float = 0.0,
    score_max: float = 1.0,
    threshold: Optional[float] = None,
    height: int = SCORE_TRACK_HEIGHT,
) -> np.ndarray:
    """
    Black bars of the maximum score in each column, a base line and a lime threshold line.
    """
    values = np.asarray(scores, dtype=np.float64)
    image = blank_track(width, height)
    span = score_max - score_min
    if values.size == 0 or span <= 0:
        return image

    step = max(1.0, values.size / width)
    base_line = height - 2
    for x in range(width):
        start = int(round(x * step))
        end = max(start + 1, int(round((x + 1) * step)))
        if start >= values.size:
            break
        fraction = (float(values[start:end].max()) - score_min) / span
        image[_bar_top(height, fraction) :, x] = BLACK
        image[base_line, x] = BLACK

    if threshold is not None:
        line = height - 1 - int(height * (threshold - score_min) / span)
        if 0 <= line < height:
            image[line, :] = LIME
    return image


def draw_gray_scale_score_track(
    scores: Sequence[float], score_min: float, score_max: float, height: int = DEFAULT_HEIGHT
) -> np.ndarray:
    """One gray level per score, darker for higher scores, with a black top boundary."""
    values = np.asarray(scores, dtype=np.float64)
    span = score_max - score_min
    if span <= 0:
        levels = np.full(values.size, 255)
    else:
        levels = np.clip(255 - np.floor(255.0 * (values - score_min) / span), 0, 255)
    image = np.repeat(levels.astype(np.uint8)[None, :, None], 3, axis=2)
    image = np.repeat(image, height, axis=0)
    image[0, :] = BLACK
    return image


def draw_syllables_track(syllable_ids: Sequence[int], width: int, garbage_id: Optional[int] = None) -> np.ndarray:
    ids = np.asarray(syllable_ids, dtype=np.int64)
    height = SYLLABLES_TRACK_HEIGHT
    image = blank_track(width, height)
    for x in range(min(width, ids.size)):
        sid = int(ids[x])
        if sid == 0:
            colour = WHITE
        elif garbage_id is not None and sid == garbage_id:
            colour = LIGHT_GRAY
        else:
            colour = TRACK_COLOURS[sid % len(TRACK_COLOURS)]
        image[:, x] = colour
        image[height - 1, x] = BLACK
    return image


def waveform_envelope(samples: np.ndarray, width: int) -> np.ndarray:
    """Minimum and maximum sample value in each of ``width`` equal chunks (2 x width)."""
    s = np.asarray(samples, dtype=np.float64)
    envelope = np.zeros((2, width))
    if s.size == 0:
        return envelope
    for x, chunk in enumerate(np.array_split(s, width)):
        if chunk.size:
            envelope[0, x] = chunk.min()
            envelope[1, x] = chunk.max()
    return envelope


def draw_wave_envelope_track(envelope: np.ndarray, height: int = ENVELOPE_TRACK_HEIGHT) -> np.ndarray:
    """Pale blue min-max envelope; clipped columns are marked orange-red at the edge."""
    env = np.asarray(envelope, dtype=np.float64)
    width = env.shape[1]
    half = height // 2
    image = blank_track(width, height)
    for x in range(width):
        lo = half + int(round(env[0, x] * half))
        hi = half + int(round(env[1, x] * half)) - 1
        for z in range(max(lo, 0), min(hi, height - 1) + 1):
            image[height - z - 1, x] = PALE_BLUE
        image[half, x] = PALE_BLUE
        if env[0, x] < -0.99:
            image[height - 3 :, x] = ORANGE_RED
        elif env[1, x] > 0.99:
            image[:3, x] = ORANGE_RED
    return image


def draw_time_track(duration: float, pixels_per_second: float, height: int = HEIGHT_OF_TIME_SCALE) -> np.ndarray:
    """
    Relative time scale: short tics every second, full height tics every ten seconds.
    """
    if pixels_per_second <= 0:
        raise ValueError(f"pixels_per_second must be positive, got {pixels_per_second}")
    width = max(1, int(round(duration * pixels_per_second)))
    image = blank_track(width, height)
    image[0, :] = BLACK
    image[height - 1, :] = BLACK
    for second in range(int(duration) + 1):
        x = int(round(second * pixels_per_second))
        if x >= width:
            break
        if second % 10 == 0:
            image[:, x] = BLACK
        elif pixels_per_second >= 2:
            image[: height // 3, x] = BLACK
    return image


# =============================================================================
# Track objects
# =============================================================================


@dataclass
class ImageTrack:
    """
    A track type with the data needed to draw it.

    Attributes:
        track_type: What the track shows
        data: Score or decibel values, or the envelope matrix
        int_data: Segmentation states or syllable ids
        score_min: Score drawn at the bottom of a score track
        score_max: Score drawn at the top of a score track
        score_threshold: Score at which a threshold line is drawn
        k1: First segmentation threshold, normalised
        k2: Second segmentation threshold, normalised
        duration: Duration shown by a time track
        pixels_per_second: Time track scale
        name: Track title
    """

    track_type: TrackType
    data: Optional[np.ndarray] = None
    int_data: Optional[np.ndarray] = None
    score_min: float = 0.0
    score_max: float = 10.0
    score_threshold: Optional[float] = None
    k1: float = -1.0
    k2: float = -1.0
    duration: float = 0.0
    pixels_per_second: float = 1.0
    garbage_id: Optional[int] = None
    name: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def height(self) -> int:
        return TRACK_HEIGHTS.get(self.track_type, DEFAULT_HEIGHT)

    def draw(self, width: Optional[int] = None) -> np.ndarray:
        """
        Render the track.

        Args:
            width: Image width in pixels; defaults to the data length

        Raises:
            ValueError: For a track without drawable data
        """
        t = self.track_type
        if t is TrackType.TIME_TICS:
            return draw_time_track(self.duration, self.pixels_per_second)
        if t is TrackType.WAVE_ENVELOPE:
            return draw_wave_envelope_track(self.data)
        if t is TrackType.SYLLABLES:
            return draw_syllables_track(self.int_data, width or len(self.int_data), self.garbage_id)

        if self.data is None:
            raise ValueError(f"Track {t.value} has no data to draw")
        width = width or len(self.data)
        if t is TrackType.DECIBELS:
            return draw_decibel_track(self.data, width, self.k1, self.k2)
        if t is TrackType.SEGMENTATION:
            return draw_segmentation_track(self.data, self.int_data, width, self.k1, self.k2)
        if t is TrackType.SCORE_ARRAY:
            return draw_score_track(self.data, width, self.score_min, self.score_max, self.score_threshold)

        logger.warning(f"Track type {t.value} is not drawable")
        return blank_track(width, self.height)


def get_decibel_track(sonogram: "BaseSonogram") -> ImageTrack:
    return ImageTrack(TrackType.DECIBELS, data=np.asarray(sonogram.decibels_normalised))


def get_segmentation_track(sonogram: "BaseSonogram") -> ImageTrack:
    """Normalised decibels with segmentation states from the endpoint thresholds."""
    reference = sonogram.snr_data.max_reference_decibels_wrt_noise or 1.0
    return ImageTrack(
        TrackType.SEGMENTATION,
        data=np.asarray(sonogram.decibels_normalised),
        int_data=segmentation_states(sonogram.decibels_per_frame),
        k1=K1_THRESHOLD_DB / reference,
        k2=K2_THRESHOLD_DB / reference,
    )


def get_score_track(
    scores: Sequence[float],
    score_min: Optional[float] = None,
    score_max: Optional[float] = None,
    score_threshold: Optional[float] = None,
    name: str = "",
) -> ImageTrack:
    """Score track; the score range defaults to the range of ``scores``."""
    data = np.asarray(scores, dtype=np.float64)
    if score_min is None:
        score_min = float(data.min()) if data.size else 0.0
    if score_max is None:
        score_max = float(data.max()) if data.size else 1.0
    return ImageTrack(
        TrackType.SCORE_ARRAY,
        data=data,
        score_min=score_min,
        score_max=score_max,
        score_threshold=score_threshold,
        name=name,
    )


def get_wave_envelope_track(samples: np.ndarray, width: int) -> ImageTrack:
    return ImageTrack(TrackType.WAVE_ENVELOPE, data=waveform_envelope(samples, width))


def get_syllables_track(syllable_ids: Sequence[int], garbage_id: Optional[int] = None) -> ImageTrack:
    return ImageTrack(TrackType.SYLLABLES, int_data=np.asarray(syllable_ids), garbage_id=garbage_id)


def get_time_track(duration: float, pixels_per_second: float) -> ImageTrack:
    return ImageTrack(TrackType.TIME_TICS, duration=duration, pixels_per_second=pixels_per_second)


def stack_tracks(tracks: Sequence[np.ndarray]) -> np.ndarray:
    """
    Stack rendered tracks top to bottom.

    Narrower tracks are padded on the right with white.

    Raises:
        ValueError: If no tracks are given
    """
    if not tracks:
        raise ValueError("No tracks to stack")
    width = max(t.shape[1] for t in tracks)
    padded = []
    for t in tracks:
        if t.shape[1] < width:
            pad = blank_track(width - t.shape[1], t.shape[0])
            t = np.concatenate((t, pad), axis=1)
        padded.append(t)
    return np.concatenate(padded, axis=0)
