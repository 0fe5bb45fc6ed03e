"""
Service layer for Mobility Engine
"""

from .cache_paths import CachePaths
from .dataset_store import DatasetNotFoundError, DatasetStore
from .fits_service import FitService

__all__ = [
    'CachePaths',
    'DatasetNotFoundError',
    'DatasetStore',
    'FitService',
]
