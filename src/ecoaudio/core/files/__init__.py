"""File utilities for audio recordings."""

from ecoaudio.core.files.renamer import RenameResult, file_name_contains_date_time, rename_audio_files

__all__ = [
    "RenameResult",
    "file_name_contains_date_time",
    "rename_audio_files",
]
