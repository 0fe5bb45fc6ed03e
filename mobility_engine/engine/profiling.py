"""
Dataset Profiling Module

Summarises an uploaded observation table: column types and roles, missing
value share per column, number of distinct groups and a few preview rows.
The profile is what clients use to pick the group, response and predictor
columns for a fit.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from mobility_engine.engine.duckdb_engine import qident
from mobility_engine.stats.schema import ObservationSchema


def infer_role(dtype: str) -> str:
    """
    Infer the semantic role of a column based on its DuckDB type.

    Examples:
        'BIGINT' → 'numeric'
        'DOUBLE' → 'numeric'
        'VARCHAR' → 'categorical'
        'DATE' → 'datetime'
    """
    dtype_lower = dtype.lower()

    if any(keyword in dtype_lower for keyword in ["int", "float", "double", "decimal", "numeric", "real"]):
        return "numeric"

    if any(keyword in dtype_lower for keyword in ["date", "time", "timestamp"]):
        return "datetime"

    return "categorical"


def schema_field(name: str, schema: Optional[ObservationSchema]) -> Optional[str]:
    """Which observation field a column plays, if any."""
    if schema is None:
        return None
    if name == schema.group_column:
        return "group"
    if name == schema.date_column:
        return "date"
    if name == schema.cases_column:
        return "cases"
    if name in schema.mobility_columns:
        return "mobility"
    return None


def build_profile_from_duckdb(
    con,
    view: str,
    sample_limit: int = 20,
    schema: Optional[ObservationSchema] = None,
) -> Dict[str, Any]:
    """
    Profile the view ``view`` on an open DuckDB connection.

    Returns:
        {
            "n_rows": 4512,
            "n_cols": 9,
            "n_groups": 12,
            "schema": [
                {"name": "country", "dtype": "VARCHAR", "role": "categorical",
                 "field": "group", "missing_pct": 0.0},
                {"name": "parks", "dtype": "DOUBLE", "role": "numeric",
                 "field": "mobility", "missing_pct": 0.031},
                ...
            ],
            "sample_rows": [...]
        }

    ``n_groups`` is None when the schema's group column is absent.
    """
    described = con.execute(f"DESCRIBE SELECT * FROM {view}").fetchall()

    columns = []
    for name, dtype, *_ in described:
        columns.append({
            "name": name,
            "dtype": str(dtype),
            "role": infer_role(str(dtype)),
            "field": schema_field(name, schema),
            "missing_pct": 0.0,
        })

    n_rows = int(con.execute(f"SELECT COUNT(*) FROM {view}").fetchone()[0])

    if n_rows > 0:
        for col in columns:
            # AVG of 1/0 gives the proportion of missing values
            share = con.execute(
                f"SELECT AVG(CASE WHEN {qident(col['name'])} IS NULL THEN 1 ELSE 0 END)::DOUBLE FROM {view}"
            ).fetchone()[0]
            col["missing_pct"] = round(float(share or 0.0), 4)

    n_groups = None
    if schema is not None and any(c["name"] == schema.group_column for c in columns):
        n_groups = int(
            con.execute(f"SELECT COUNT(DISTINCT {qident(schema.group_column)}) FROM {view}").fetchone()[0]
        )

    # Round-trip through JSON so dates and NaN come out serialisable
    rows_df = con.execute(f"SELECT * FROM {view} LIMIT {int(sample_limit)}").fetchdf()
    sample_rows = json.loads(rows_df.to_json(orient="records", date_format="iso"))

    return {
        "n_rows": n_rows,
        "n_cols": len(columns),
        "n_groups": n_groups,
        "schema": columns,
        "sample_rows": sample_rows,
    }
