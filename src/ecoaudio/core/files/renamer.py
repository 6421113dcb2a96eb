"""
Audio File Renamer
==================

Rename audio files whose names carry no date-time so that the name records
the recording start in UTC:

    <original stem>_YYYYMMDD-HHMMSSZ.<ext>

The start time is the file's modification time minus the recording
duration. Files are processed by a bounded thread pool; each worker writes
only its own slot of the result list, so results keep the sorted input
order. An existing file is never replaced: each new name is claimed once per
run and moved with a no-clobber hard link.

Example:
    >>> from ecoaudio.core.files.renamer import rename_audio_files
    >>> results = rename_audio_files("./recordings", timezone="+1000", dry_run=True)
    >>> [r.new_path for r in results if r.renamed]
"""

import logging
import os
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

import librosa
import soundfile as sf

from ecoaudio.core.exceptions import EmptyInputError

logger = logging.getLogger(__name__)

RENAMABLE_EXTENSIONS = (".wav", ".mp3", ".wv", ".ogg", ".wma")
UTC_DATE_FORMAT = "%Y%m%d-%H%M%SZ"

# 20130415-060000Z, 20130415_060000+1000, 20130415T060000
_DATE_TIME_PATTERN = re.compile(
    r"(?<!\d)(19|20)\d{2}(0[1-9]|1[0-2])(0[1-9]|[12]\d|3[01])[-_T]([01]\d|2[0-3])[0-5]\d[0-5]\d"
    r"(Z|[+-]\d{2}:?\d{2})?(?!\d)"
)
_TIMEZONE_PATTERN = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


@dataclass
class RenameResult:
    """
    Outcome for one file.

    Attributes:
        original_path: Path before renaming
        new_path: Path after renaming (equal to the original when skipped)
        renamed: Whether a new name was chosen
        dry_run: True if the file was left in place
        error: Error message if the new name could not be determined
    """

    original_path: str
    new_path: str
    renamed: bool = False
    dry_run: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_path": self.original_path,
            "new_path": self.new_path,
            "renamed": self.renamed,
            "dry_run": self.dry_run,
            "error": self.error,
        }


def file_name_contains_date_time(name: str) -> bool:
    return _DATE_TIME_PATTERN.search(name) is not None


def parse_timezone(value: str) -> dt_timezone:
    """
    Parse an offset such as ``+1000``, ``-07:00`` or ``Z``.

    Raises:
        ValueError: For anything else
    """
    if value.upper() in ("Z", "UTC"):
        return dt_timezone.utc
    match = _TIMEZONE_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid timezone offset: {value!r} (expected e.g. '+1000' or '-0700')")
    sign, hours, minutes = match.groups()
    offset = timedelta(hours=int(hours), minutes=int(minutes))
    return dt_timezone(-offset if sign == "-" else offset)


def get_audio_duration(path: Union[str, Path]) -> float:
    """Duration in seconds from the file header, decoding only if the header cannot be read."""
    try:
        return float(sf.info(str(path)).duration)
    except (RuntimeError, sf.LibsndfileError):
        return float(librosa.get_duration(path=str(path)))


def recording_start(path: Union[str, Path], tz: Optional[dt_timezone] = None) -> datetime:
    """
    UTC start of a recording: modification time minus duration.

    Args:
        path: Audio file
        tz: Offset of the recorder's clock. The modification time's local
            wall-clock reading is interpreted in this offset. None uses the
            file system timestamp as is.
    """
    p = Path(path)
    mtime = p.stat().st_mtime
    if tz is None:
        modified = datetime.fromtimestamp(mtime, tz=dt_timezone.utc)
    else:
        modified = datetime.fromtimestamp(mtime).replace(tzinfo=tz)
    return (modified - timedelta(seconds=get_audio_duration(p))).astimezone(dt_timezone.utc)


def get_new_name(path: Union[str, Path], tz: Optional[dt_timezone] = None) -> str:
    """``<stem>_YYYYMMDD-HHMMSSZ.<lower-case ext>`` for a file."""
    p = Path(path)
    stamp = recording_start(p, tz).strftime(UTC_DATE_FORMAT)
    return f"{p.stem}_{stamp}{p.suffix.lower()}"


def find_renamable_files(directory: Union[str, Path], recursive: bool = False) -> List[Path]:
    """
    Audio files with a renamable extension, sorted by name.

    Raises:
        FileNotFoundError: If the directory does not exist
    """
    d = Path(directory)
    if not d.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")
    candidates = d.rglob("*") if recursive else d.glob("*")
    files = [f for f in candidates if f.is_file() and f.suffix.lower() in RENAMABLE_EXTENSIONS]
    return sorted(files, key=lambda f: f.name)


class _TargetClaims:
    """New names handed out during one run, shared by the worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._claimed: Set[str] = set()

    def claim(self, target: Path) -> bool:
        key = str(target)
        with self._lock:
            if key in self._claimed:
                return False
            self._claimed.add(key)
            return True


def _move_no_clobber(source: Path, target: Path) -> None:
    """
    Move ``source`` to ``target`` unless ``target`` exists.

    Raises:
        FileExistsError: If ``target`` already exists
    """
    try:
        os.link(source, target)
    except FileExistsError:
        raise FileExistsError(f"Target already exists: {target}") from None
    except OSError:
        # no hard links (e.g. FAT formatted cards)
        if target.exists():
            raise FileExistsError(f"Target already exists: {target}")
        os.rename(source, target)
        return
    os.unlink(source)


def _rename_one(path: Path, tz: Optional[dt_timezone], dry_run: bool, claims: _TargetClaims) -> RenameResult:
    if file_name_contains_date_time(path.name):
        return RenameResult(str(path), str(path), dry_run=dry_run)

    try:
        target = path.with_name(get_new_name(path, tz))
        if not claims.claim(target):
            raise FileExistsError(f"Another file in this run is renamed to {target}")
        if dry_run:
            if target.exists():
                raise FileExistsError(f"Target already exists: {target}")
        else:
            _move_no_clobber(path, target)
    except (OSError, RuntimeError, ValueError) as e:
        logger.warning(f"Could not rename {path}: {e}")
        return RenameResult(str(path), str(path), dry_run=dry_run, error=str(e))

    return RenameResult(str(path), str(target), renamed=True, dry_run=dry_run)


def rename_files(
    files: List[Path],
    tz: Optional[dt_timezone] = None,
    dry_run: bool = False,
    max_workers: Optional[int] = None,
) -> List[RenameResult]:
    """
    Rename files in parallel.

    Args:
        files: Files to rename
        tz: Recorder clock offset, see :func:`recording_start`
        dry_run: Only compute the new names
        max_workers: Worker threads (default: CPU count)

    Returns:
        One result per input file, in input order
    """
    workers = max_workers or os.cpu_count() or 1
    results: List[Optional[RenameResult]] = [None] * len(files)
    claims = _TargetClaims()

    def work(index: int) -> None:
        results[index] = _rename_one(files[index], tz, dry_run, claims)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        for future in [executor.submit(work, i) for i in range(len(files))]:
            future.result()

    for r in results:
        if r.renamed:
            logger.info(f"{r.original_path}, {r.new_path}")
    return results


def rename_audio_files(
    directory: Union[str, Path],
    timezone: Optional[str] = None,
    recursive: bool = False,
    dry_run: bool = False,
    max_workers: Optional[int] = None,
) -> List[RenameResult]:
    """
    Rename every undated audio file in a directory.

    Raises:
        FileNotFoundError: If the directory does not exist
        EmptyInputError: If it holds no audio files
        ValueError: For an invalid timezone
    """
    tz = parse_timezone(timezone) if timezone else None
    files = find_renamable_files(directory, recursive)
    if not files:
        raise EmptyInputError(f"No audio files to rename in {directory}", directory=str(directory))
    logger.debug(f"Renaming {len(files)} files in {directory} (dry_run={dry_run})")
    return rename_files(files, tz, dry_run, max_workers)
