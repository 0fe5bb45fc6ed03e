"""
Fit Service
Runs per-group linear fits against stored datasets or inline records.

Features:
- Slopes of one response ~ predictor pair per group
- Slope grid: one response against several mobility predictors
- Results cached on disk, keyed by request + parquet checksum
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from mobility_engine import __version__
from mobility_engine.services.dataset_store import DatasetStore
from mobility_engine.stats.regression import MIN_OBSERVATIONS, GroupFits, fit_group_models, fit_slope_grid

logger = logging.getLogger(__name__)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _hash_spec(
    dataset_id: str,
    analysis: str,
    params: dict,
    parquet_sha: str,
    engine_version: str,
) -> str:
    """
    Create a unique hash for caching purposes.
    Same analysis on same data always produces same hash.
    """
    payload = json.dumps(
        {
            "dataset_id": dataset_id,
            "analysis": analysis,
            "params": params,
            "parquet_sha": parquet_sha,
            "engine_version": engine_version,
        },
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _fits_payload(fits: GroupFits, group_key: str) -> Dict[str, Any]:
    return {
        "group_key": group_key,
        "response": fits.response,
        "predictor": fits.predictor,
        "slopes": {group: m.slope for group, m in fits.models.items()},
        "fits": [m.to_dict() for m in fits.models.values()],
        "skipped": [s.to_dict() for s in fits.skipped],
    }


def _grid_payload(grid: pd.DataFrame, group_key: str, response: str) -> Dict[str, Any]:
    # NaN is not JSON
    rows = grid.astype(object).where(grid.notna(), None).to_dict(orient="records")
    return {
        "group_key": group_key,
        "response": response,
        "rows": rows,
        "skipped": list(grid.attrs.get("skipped", [])),
    }


# ============================================================================
# SERVICE
# ============================================================================

class FitService:
    def __init__(
        self,
        store: DatasetStore,
        min_obs: int = MIN_OBSERVATIONS,
        normalize_keys: bool = True,
        cache_enabled: bool = True,
    ):
        self.store = store
        self.min_obs = min_obs
        self.normalize_keys = normalize_keys
        self.cache_enabled = cache_enabled

    # ------------------------------------------------------------
    # Result cache
    # ------------------------------------------------------------
    def try_cache_get(self, analysis_hash: str) -> Optional[Dict[str, Any]]:
        if not self.cache_enabled:
            return None
        path = self.store.cache.result_path(analysis_hash)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def cache_put(self, analysis_hash: str, result: Dict[str, Any]) -> None:
        if not self.cache_enabled:
            return
        path: Path = self.store.cache.result_path(analysis_hash)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(result), encoding="utf-8")

    def _cached(self, dataset_id: str, analysis: str, params: Dict[str, Any], compute) -> Tuple[Dict[str, Any], bool]:
        meta = self.store.get(dataset_id)
        params = {**params, "min_obs": self.min_obs, "normalize_keys": self.normalize_keys}
        analysis_hash = _hash_spec(dataset_id, analysis, params, meta["parquet_sha"], __version__)

        hit = self.try_cache_get(analysis_hash)
        if hit is not None:
            logger.info("Cache hit for %s on dataset %s", analysis, dataset_id)
            return hit, True

        result = compute()
        self.cache_put(analysis_hash, result)
        return result, False

    # ------------------------------------------------------------
    # Stored datasets
    # ------------------------------------------------------------
    def slopes_for_dataset(
        self,
        dataset_id: str,
        group_key: str,
        response: str,
        predictor: str,
        on_insufficient: str = "raise",
    ) -> Tuple[Dict[str, Any], bool]:
        def compute() -> Dict[str, Any]:
            frame = self.store.engine.read_columns(
                self.store.parquet_path(dataset_id), [group_key, response, predictor]
            )
            return self.slopes_for_records(frame, group_key, response, predictor, on_insufficient)

        params = {
            "group_key": group_key,
            "response": response,
            "predictor": predictor,
            "on_insufficient": on_insufficient,
        }
        return self._cached(dataset_id, "slopes", params, compute)

    def slope_grid_for_dataset(
        self,
        dataset_id: str,
        group_key: str,
        response: str,
        predictors: Optional[Sequence[str]] = None,
    ) -> Tuple[Dict[str, Any], bool]:
        predictors = list(predictors or self._default_predictors(dataset_id, group_key, response))

        def compute() -> Dict[str, Any]:
            frame = self.store.engine.read_columns(
                self.store.parquet_path(dataset_id), [group_key, response, *predictors]
            )
            grid = fit_slope_grid(
                frame,
                group_key,
                response,
                predictors,
                min_obs=self.min_obs,
                normalize_keys=self.normalize_keys,
            )
            return _grid_payload(grid, group_key, response)

        params = {"group_key": group_key, "response": response, "predictors": predictors}
        return self._cached(dataset_id, "slope_grid", params, compute)

    def _default_predictors(self, dataset_id: str, group_key: str, response: str) -> List[str]:
        """Mobility columns from the profile, else every other numeric column."""
        profile = self.store.get(dataset_id).get("profile") or {}
        columns = profile.get("schema") or []
        mobility = [c["name"] for c in columns if c.get("field") == "mobility" and c["name"] != response]
        if mobility:
            return mobility
        return [
            c["name"] for c in columns
            if c.get("role") == "numeric" and c["name"] not in (group_key, response)
        ]

    # ------------------------------------------------------------
    # Inline tables
    # ------------------------------------------------------------
    def slopes_for_records(
        self,
        table: Any,
        group_key: str,
        response: str,
        predictor: str,
        on_insufficient: str = "raise",
    ) -> Dict[str, Any]:
        fits = fit_group_models(
            table,
            group_key,
            response,
            predictor,
            on_insufficient=on_insufficient,
            min_obs=self.min_obs,
            normalize_keys=self.normalize_keys,
        )
        return _fits_payload(fits, group_key)
