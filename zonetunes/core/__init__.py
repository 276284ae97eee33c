"""
Core application engine for orchestrating a sync run.

This package contains the primary logic. The `SyncManager` acts as the
high-level coordinator, delegating fetching and beatmapping of a single link
to the `MediaPipeline`.
"""

from .media_pipeline import MediaPipeline
from .sync_manager import SyncManager

__all__ = ["MediaPipeline", "SyncManager"]
