"""
Visualize Package
=================

Image tracks (numpy RGB strips) drawn under spectrogram images.
"""

from ecoaudio.core.visualize.image_track import (
    ImageTrack,
    TrackType,
    get_decibel_track,
    get_score_track,
    get_segmentation_track,
    get_time_track,
    stack_tracks,
)

__all__ = [
    "ImageTrack",
    "TrackType",
    "get_decibel_track",
    "get_segmentation_track",
    "get_score_track",
    "get_time_track",
    "stack_tracks",
]
