from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import List, Sequence

import duckdb
import pandas as pd

from mobility_engine.stats.errors import ColumnNotFoundError


def qident(name: str) -> str:
    """Safely quote identifiers for DuckDB SQL."""
    return '"' + name.replace('"', '""') + '"'


class DuckDBEngine:
    """Ephemeral in-memory DuckDB over a local Parquet file.

    Only the columns a fit needs are pulled into pandas.
    """

    VIEW = "ds"

    def __init__(self, memory_limit: str = "1GB", threads: int = 4):
        self.memory_limit = memory_limit
        self.threads = threads

    @contextmanager
    def connect(self):
        con = duckdb.connect(database=":memory:", read_only=False)
        try:
            con.execute(f"SET memory_limit='{self.memory_limit}'")
            con.execute(f"SET threads={int(self.threads)}")
            yield con
        finally:
            con.close()

    def register_parquet(self, con: duckdb.DuckDBPyConnection, parquet_path: Path) -> str:
        # DuckDB doesn't allow prepared parameters in CREATE VIEW ... read_parquet(?)
        path_sql = Path(parquet_path).as_posix().replace("'", "''")
        con.execute(f"CREATE OR REPLACE TEMP VIEW {self.VIEW} AS SELECT * FROM read_parquet('{path_sql}')")
        return self.VIEW

    @staticmethod
    def columns_of(con: duckdb.DuckDBPyConnection, view: str) -> List[str]:
        return [r[0] for r in con.execute(f"DESCRIBE SELECT * FROM {view}").fetchall()]

    def list_columns(self, parquet_path: Path) -> List[str]:
        with self.connect() as con:
            view = self.register_parquet(con, parquet_path)
            return self.columns_of(con, view)

    def read_columns(self, parquet_path: Path, columns: Sequence[str]) -> pd.DataFrame:
        """Select ``columns`` (duplicates dropped) into a DataFrame.

        Raises ColumnNotFoundError before any rows are read.
        """
        wanted = list(dict.fromkeys(columns))
        with self.connect() as con:
            view = self.register_parquet(con, parquet_path)
            available = self.columns_of(con, view)
            for col in wanted:
                if col not in available:
                    raise ColumnNotFoundError(col, available)

            cols = ", ".join(qident(c) for c in wanted)
            return con.execute(f"SELECT {cols} FROM {view}").fetchdf()
