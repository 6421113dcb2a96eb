"""
Service Factory
===============

Single place to obtain service instances.

Services are created on first access and reused afterwards.

Usage:
    from ecoaudio.services.factory import ServiceFactory

    factory = ServiceFactory()
    result = factory.indices.calculate("dawn.wav")
"""

from typing import Dict

from .base import BaseService
from .config import ConfigService
from .events import EventDetectionService
from .files import FileRenameService
from .indices import IndicesService
from .learning import FeatureLearningService
from .noise import NoiseService
from .oscillations import OscillationsService


class ServiceFactory:
    """Creates services lazily and caches one instance of each."""

    def __init__(self) -> None:
        self._instances: Dict[type, BaseService] = {}

    def _get(self, service_class: type) -> BaseService:
        if service_class not in self._instances:
            self._instances[service_class] = service_class()
        return self._instances[service_class]

    @property
    def indices(self) -> IndicesService:
        return self._get(IndicesService)

    @property
    def noise(self) -> NoiseService:
        return self._get(NoiseService)

    @property
    def events(self) -> EventDetectionService:
        return self._get(EventDetectionService)

    @property
    def learning(self) -> FeatureLearningService:
        return self._get(FeatureLearningService)

    @property
    def oscillations(self) -> OscillationsService:
        return self._get(OscillationsService)

    @property
    def files(self) -> FileRenameService:
        return self._get(FileRenameService)

    @property
    def config(self) -> ConfigService:
        return self._get(ConfigService)
