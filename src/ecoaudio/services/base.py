# services/base.py
"""
Base class and utilities for all services.
"""

import logging
from dataclasses import asdict, dataclass, field, is_dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from ecoaudio.core.audio import AUDIO_EXTENSIONS

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Result object returned by service operations.

    Provides a consistent interface for the CLI to handle operation outcomes.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        data: T = None,
        message: str = None,
        warnings: List[str] = None,
        **metadata,
    ) -> "ServiceResult[T]":
        """Create a successful result."""
        return cls(success=True, data=data, message=message, warnings=warnings or [], metadata=metadata)

    @classmethod
    def fail(cls, error: str, warnings: List[str] = None, **metadata) -> "ServiceResult[T]":
        """Create a failed result."""
        return cls(success=False, error=error, warnings=warnings or [], metadata=metadata)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": self.success,
            "message": self.message,
            "error": self.error,
            "warnings": self.warnings,
        }

        if self.data is None:
            result["data"] = None
        elif hasattr(self.data, "to_dict"):
            result["data"] = self.data.to_dict()
        elif is_dataclass(self.data):
            result["data"] = asdict(self.data)
        elif isinstance(self.data, (dict, list, str, int, float, bool)):
            result["data"] = self.data
        else:
            result["data"] = str(self.data)

        if self.metadata:
            result["metadata"] = self.metadata
        return result


@dataclass
class BatchProgress:
    """Progress information for batch operations."""

    total: int
    completed: int = 0
    current_file: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def percent(self) -> float:
        return (self.completed / self.total * 100) if self.total > 0 else 0

    @property
    def remaining(self) -> int:
        return self.total - self.completed


ProgressCallback = Callable[[BatchProgress], None]


class BaseService:
    """
    Base class for all services.

    Provides file discovery, path validation and progress reporting.
    """

    def __init__(self) -> None:
        self._progress_callback: Optional[ProgressCallback] = None

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set a callback for progress updates during batch operations."""
        self._progress_callback = callback

    def _report_progress(self, progress: BatchProgress) -> None:
        if self._progress_callback:
            self._progress_callback(progress)

    def _get_audio_files(self, path: str, recursive: bool = True) -> List[Path]:
        """
        Audio files at a path: the file itself, or the audio files of a directory sorted by name.
        """
        p = Path(path)
        if p.is_file():
            return [p]
        candidates = p.rglob("*") if recursive else p.glob("*")
        return sorted(f for f in candidates if f.is_file() and f.suffix.lower() in AUDIO_EXTENSIONS)

    def _validate_input_path(self, path: str, must_exist: bool = True) -> Optional[str]:
        """
        Returns:
            None if valid, error message if invalid
        """
        if must_exist and not Path(path).exists():
            return f"Path does not exist: {path}"
        return None

    def _validate_output_path(self, path: str, allow_overwrite: bool = True, create_parents: bool = True) -> Optional[str]:
        """
        Returns:
            None if valid, error message if invalid
        """
        p = Path(path)
        if not allow_overwrite and p.exists():
            return f"Output path already exists: {path}"
        if create_parents:
            p.parent.mkdir(parents=True, exist_ok=True)
        return None
