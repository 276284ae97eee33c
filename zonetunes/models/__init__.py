"""
Data Models Layer.

This package contains the configuration model, the zone registry and the
value objects passed between the pipeline stages.
"""

from .config import SyncConfig
from .results import AcquireOptions, PipelineResult, ProcessOptions, ProcessResult
from .zone import ZoneDescriptor, ZoneRegistry

__all__ = [
    "AcquireOptions",
    "PipelineResult",
    "ProcessOptions",
    "ProcessResult",
    "SyncConfig",
    "ZoneDescriptor",
    "ZoneRegistry",
]
