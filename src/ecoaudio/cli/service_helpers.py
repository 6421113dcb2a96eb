"""
CLI Service Helpers
===================

Shared ServiceFactory access and result handling for CLI commands.

The factory is created on first service access so that ``ecoaudio --help``
does not import the numerical stack.

Usage:
    from ecoaudio.cli.service_helpers import handle_result, services

    result = handle_result(services.indices.calculate("dawn.wav"))
"""

from typing import TYPE_CHECKING, Any, Optional, TypeVar

import click

if TYPE_CHECKING:
    from ecoaudio.services import ServiceFactory
    from ecoaudio.services.base import ServiceResult
    from ecoaudio.services.config import ConfigService
    from ecoaudio.services.events import EventDetectionService
    from ecoaudio.services.files import FileRenameService
    from ecoaudio.services.indices import IndicesService
    from ecoaudio.services.learning import FeatureLearningService
    from ecoaudio.services.noise import NoiseService
    from ecoaudio.services.oscillations import OscillationsService

T = TypeVar("T")


# ============================================================================
# Singleton Factory Instance
# ============================================================================

_factory: Optional["ServiceFactory"] = None


def get_factory() -> "ServiceFactory":
    global _factory
    if _factory is None:
        from ecoaudio.services import ServiceFactory

        _factory = ServiceFactory()
    return _factory


class _ServiceAccessor:
    """Property access to the services of the shared factory."""

    @property
    def indices(self) -> "IndicesService":
        return get_factory().indices

    @property
    def noise(self) -> "NoiseService":
        return get_factory().noise

    @property
    def events(self) -> "EventDetectionService":
        return get_factory().events

    @property
    def learning(self) -> "FeatureLearningService":
        return get_factory().learning

    @property
    def oscillations(self) -> "OscillationsService":
        return get_factory().oscillations

    @property
    def files(self) -> "FileRenameService":
        return get_factory().files

    @property
    def config(self) -> "ConfigService":
        return get_factory().config


services = _ServiceAccessor()


# ============================================================================
# Result Handling Utilities
# ============================================================================


def handle_result(result: "ServiceResult[T]") -> T:
    """
    Return the data of a successful result, or print the error and exit with code 1.

    Warnings attached to the result are echoed to stderr.
    """
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if not result.success:
        exit_with_error(result.error or "Unknown error")
    return result.data


def exit_with_error(message: str, code: int = 1) -> None:
    """
    Print error message and exit.

    Raises:
        SystemExit: Always exits with specified code
    """
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(code)


# ============================================================================
# Configuration Defaults
# ============================================================================


def config_value(section: str, key: str, value: Any = None) -> Any:
    """
    Value given on the command line, or the configured one when it is None.

    The configuration is the one loaded by the root ``--config`` option,
    falling back to the built-in defaults for keys a file leaves out.
    """
    if value is not None:
        return value
    from ecoaudio.core.config import DEFAULT_CONFIG, get_config

    return get_config().get(section, key, DEFAULT_CONFIG.get(section, {}).get(key))
