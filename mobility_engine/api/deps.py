from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from fastapi import HTTPException

from mobility_engine.config import settings
from mobility_engine.engine.duckdb_engine import DuckDBEngine
from mobility_engine.services.dataset_store import DatasetNotFoundError, DatasetStore
from mobility_engine.services.fits_service import FitService
from mobility_engine.stats.errors import FitError, InsufficientDataError


@lru_cache
def get_store() -> DatasetStore:
    engine = DuckDBEngine(memory_limit=settings.duckdb_memory_limit, threads=settings.duckdb_threads)
    return DatasetStore(Path(settings.data_dir), engine=engine, schema=settings.observation_schema())


def get_fit_service() -> FitService:
    return FitService(
        get_store(),
        min_obs=settings.min_observations,
        normalize_keys=settings.normalize_group_keys,
        cache_enabled=settings.result_cache_enabled,
    )


def http_error(e: Exception) -> HTTPException:
    """Map domain errors onto HTTP status codes."""
    if isinstance(e, DatasetNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InsufficientDataError):
        return HTTPException(status_code=422, detail=e.to_dict())
    if isinstance(e, FitError):
        return HTTPException(status_code=400, detail=e.to_dict())
    return HTTPException(status_code=400, detail=str(e))
