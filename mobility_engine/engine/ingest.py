from __future__ import annotations

import hashlib
import logging
import uuid
from pathlib import Path
from typing import Optional

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from mobility_engine.stats.schema import ObservationSchema

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".csv", ".txt", ".xlsx", ".parquet")


def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            b = f.read(chunk_size)
            if not b:
                break
            h.update(b)
    return h.hexdigest()


def read_table(input_path: Path) -> pd.DataFrame:
    """Read CSV/TXT/XLSX/Parquet into pandas."""
    suffix = input_path.suffix.lower()

    if suffix == ".csv":
        return pd.read_csv(input_path)
    if suffix == ".xlsx":
        return pd.read_excel(input_path)
    if suffix == ".txt":
        return pd.read_csv(input_path, sep=None, engine="python")
    if suffix == ".parquet":
        return pd.read_parquet(input_path)
    raise ValueError(f"Unsupported file type: {suffix}")


def load_observations(input_path: Path, schema: Optional[ObservationSchema] = None) -> pd.DataFrame:
    """Read a file and, when a schema is given, validate it as an observation table."""
    df = read_table(input_path)
    if schema is not None:
        df = schema.validate(df)
    return df


def build_parquet(input_path: Path, output_parquet_path: Path) -> tuple[int, int]:
    """Convert a supported file to zstd parquet; returns (rows, cols)."""
    output_parquet_path.parent.mkdir(parents=True, exist_ok=True)
    df = read_table(input_path)

    # tz-aware datetimes trip up DuckDB parquet reads; store them as strings
    for col in df.columns:
        if isinstance(df[col].dtype, pd.DatetimeTZDtype):
            df[col] = df[col].astype(str)

    table = pa.Table.from_pandas(df, preserve_index=False)
    pq.write_table(table, output_parquet_path.as_posix(), compression="zstd")
    logger.info("Wrote %s (%d rows, %d cols)", output_parquet_path, table.num_rows, table.num_columns)
    return int(table.num_rows), int(table.num_columns)


def new_dataset_id() -> str:
    return str(uuid.uuid4())
