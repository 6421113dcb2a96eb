# services/__init__.py
"""
Services Package
================

Application services between the command line and the core analyses.

Services provide:
- Input validation and error handling
- File output (CSV, events text)
- Progress reporting for batch work

Every operation returns a ServiceResult instead of raising.

Usage:
    from ecoaudio.services import ServiceFactory

    result = ServiceFactory().indices.calculate("dawn.wav")
    if result.success:
        print(result.data.summary.aci)
"""

from .base import BaseService, BatchProgress, ServiceResult
from .config import ConfigService
from .events import EventDetectionService, HarmonicsResult
from .factory import ServiceFactory
from .files import FileRenameService
from .indices import BatchIndicesResult, IndicesService, TemporalIndicesResult
from .learning import FeatureLearningService
from .noise import NoiseService, RecordingSnrResult
from .oscillations import OscillationsService

__all__ = [
    # Base
    "BaseService",
    "BatchProgress",
    "ServiceResult",
    "ServiceFactory",
    # Services
    "ConfigService",
    "EventDetectionService",
    "FeatureLearningService",
    "FileRenameService",
    "IndicesService",
    "NoiseService",
    "OscillationsService",
    # Results
    "BatchIndicesResult",
    "HarmonicsResult",
    "RecordingSnrResult",
    "TemporalIndicesResult",
]
