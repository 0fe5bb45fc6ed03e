from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ColumnProfile(BaseModel):
    name: str
    dtype: str
    role: str
    field: Optional[str] = None  # group / date / cases / mobility
    missing_pct: float = 0.0


class DatasetProfile(BaseModel):
    n_rows: int
    n_cols: int
    n_groups: Optional[int] = None
    columns: List[ColumnProfile] = Field(default_factory=list, alias="schema")

    # Small sample for UI preview
    sample_rows: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class DatasetCreateResponse(BaseModel):
    dataset_id: str
    profile: DatasetProfile


class DatasetMetadataResponse(BaseModel):
    dataset_id: str
    file_name: str
    created_at: str
    n_rows: int
    n_cols: int
    parquet_sha: str
    profile: DatasetProfile
