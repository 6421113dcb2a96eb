"""CLI command modules for ecoaudio."""

from .config import config
from .events import events
from .files import files
from .indices import indices
from .learn import learn
from .oscillations import oscillations
from .snr import snr

__all__ = [
    "config",
    "events",
    "files",
    "indices",
    "learn",
    "oscillations",
    "snr",
]
