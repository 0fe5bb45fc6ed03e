from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

@dataclass(frozen=True)
class CachePaths:
    base_dir: Path

    def dataset_dir(self, dataset_id: str) -> Path:
        return self.base_dir / "datasets" / dataset_id

    def raw_dir(self, dataset_id: str) -> Path:
        return self.dataset_dir(dataset_id) / "raw"

    def parquet_dir(self, dataset_id: str) -> Path:
        return self.dataset_dir(dataset_id) / "parquet"

    def raw_path(self, dataset_id: str, filename: str) -> Path:
        return self.raw_dir(dataset_id) / filename

    def parquet_path(self, dataset_id: str) -> Path:
        return self.parquet_dir(dataset_id) / "data.parquet"

    def meta_path(self, dataset_id: str) -> Path:
        return self.dataset_dir(dataset_id) / "meta.json"

    def result_path(self, analysis_hash: str) -> Path:
        return self.base_dir / "results" / f"{analysis_hash}.json"
