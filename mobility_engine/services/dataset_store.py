"""
Local dataset store.

Each uploaded file is kept as-is under ``raw/``, converted to Parquet and
profiled with DuckDB. A ``meta.json`` next to the Parquet file is the dataset
record.
"""
from __future__ import annotations

import json
import logging
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional

from mobility_engine.engine.duckdb_engine import DuckDBEngine
from mobility_engine.engine.ingest import SUPPORTED_SUFFIXES, build_parquet, new_dataset_id, sha256_file
from mobility_engine.engine.profiling import build_profile_from_duckdb
from mobility_engine.services.cache_paths import CachePaths
from mobility_engine.stats.schema import ObservationSchema

logger = logging.getLogger(__name__)


class DatasetNotFoundError(LookupError):
    def __init__(self, dataset_id: str):
        self.dataset_id = dataset_id
        super().__init__(f"Dataset not found: {dataset_id}")


class DatasetStore:
    def __init__(
        self,
        base_dir: Path,
        engine: Optional[DuckDBEngine] = None,
        schema: Optional[ObservationSchema] = None,
    ):
        self.cache = CachePaths(base_dir=Path(base_dir))
        self.engine = engine or DuckDBEngine()
        self.schema = schema

    # ------------------------------------------------------------
    # Create
    # ------------------------------------------------------------
    def create_from_upload(self, fileobj: BinaryIO, file_name: str) -> Dict[str, Any]:
        """Store an uploaded file stream and build its parquet + profile."""
        file_name = Path(file_name or "upload.csv").name
        dataset_id = new_dataset_id()
        raw_path = self.cache.raw_path(dataset_id, file_name)
        raw_path.parent.mkdir(parents=True, exist_ok=True)
        with raw_path.open("wb") as out:
            shutil.copyfileobj(fileobj, out)
        return self._build(dataset_id, raw_path)

    def create_from_path(self, path: Path) -> Dict[str, Any]:
        path = Path(path)
        dataset_id = new_dataset_id()
        raw_path = self.cache.raw_path(dataset_id, path.name)
        raw_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(path, raw_path)
        return self._build(dataset_id, raw_path)

    def _build(self, dataset_id: str, raw_path: Path) -> Dict[str, Any]:
        if raw_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            shutil.rmtree(self.cache.dataset_dir(dataset_id), ignore_errors=True)
            raise ValueError(
                f"Unsupported file type: {raw_path.suffix or '(none)'}; "
                f"expected one of {', '.join(SUPPORTED_SUFFIXES)}"
            )

        parquet_path = self.cache.parquet_path(dataset_id)
        try:
            n_rows, n_cols = build_parquet(raw_path, parquet_path)
        except Exception as e:
            shutil.rmtree(self.cache.dataset_dir(dataset_id), ignore_errors=True)
            raise ValueError(f"Failed to parse/convert file: {e}") from e

        with self.engine.connect() as con:
            view = self.engine.register_parquet(con, parquet_path)
            profile = build_profile_from_duckdb(con, view, schema=self.schema)

        meta = {
            "dataset_id": dataset_id,
            "file_name": raw_path.name,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "n_rows": n_rows,
            "n_cols": n_cols,
            "parquet_sha": sha256_file(parquet_path),
            "profile": profile,
        }
        self.cache.meta_path(dataset_id).write_text(json.dumps(meta, indent=2), encoding="utf-8")
        logger.info("Created dataset %s from %s (%d rows)", dataset_id, raw_path.name, n_rows)
        return meta

    # ------------------------------------------------------------
    # Read
    # ------------------------------------------------------------
    def get(self, dataset_id: str) -> Dict[str, Any]:
        try:
            uuid.UUID(dataset_id)
        except ValueError:
            raise DatasetNotFoundError(dataset_id)
        meta_path = self.cache.meta_path(dataset_id)
        if not meta_path.exists():
            raise DatasetNotFoundError(dataset_id)
        return json.loads(meta_path.read_text(encoding="utf-8"))

    def parquet_path(self, dataset_id: str) -> Path:
        self.get(dataset_id)
        return self.cache.parquet_path(dataset_id)

    def list_columns(self, dataset_id: str) -> List[str]:
        return self.engine.list_columns(self.parquet_path(dataset_id))
