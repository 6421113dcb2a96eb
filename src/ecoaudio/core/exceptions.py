"""
Custom Exception Classes
========================

Exceptions raised by ecoaudio analysis routines. Argument mistakes still
raise ``ValueError`` and missing paths ``FileNotFoundError``; the classes
below cover failures that callers are expected to handle specifically.
"""

from typing import Any, Dict, Optional


class EcoAudioError(Exception):
    """
    Base class for ecoaudio errors.

    Attributes:
        message (str): Explanation of the error
        context (dict): Optional details such as the offending path
    """

    def __init__(self, message: str = "An ecoaudio error occurred.", context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class AudioLoadError(EcoAudioError):
    """
    Raised when an audio file cannot be decoded.

    Attributes:
        message (str): Explanation of the error
        path (Optional[str]): File that failed to load
    """

    def __init__(self, message: str = "Failed to load audio.", path: Optional[str] = None) -> None:
        super().__init__(message, {"path": path} if path else None)
        self.path = path


class ConfigurationError(EcoAudioError):
    """Raised for invalid or unreadable configuration values."""

    def __init__(self, message: str = "Invalid configuration.", key: Optional[str] = None) -> None:
        super().__init__(message, {"key": key} if key else None)
        self.key = key


class EmptyInputError(EcoAudioError):
    """Raised when an input directory contains no usable files."""

    def __init__(self, message: str = "The input directory is empty.", directory: Optional[str] = None) -> None:
        super().__init__(message, {"directory": directory} if directory else None)
        self.directory = directory


class TemplateError(EcoAudioError):
    """Raised when an event template cannot be read or applied."""


class NotSupportedError(EcoAudioError):
    """Raised for an enumeration member that a routine does not handle."""

    def __init__(self, message: str = "Operation not supported.", operation: Optional[str] = None) -> None:
        super().__init__(message, {"operation": operation} if operation else None)
        self.operation = operation
