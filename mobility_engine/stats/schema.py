"""Explicit schema for observation tables: group keys, named columns, numeric coercion."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import ColumnNotFoundError, ColumnTypeError, InvalidTableError

TableLike = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]

DEFAULT_MOBILITY_COLUMNS: Tuple[str, ...] = (
    "retail_and_recreation",
    "grocery_and_pharmacy",
    "parks",
    "transit_stations",
    "workplaces",
    "residential",
)


def canonical_key(raw: Any) -> str:
    """Collapse whitespace and case-fold, so 'United  Kingdom' == 'united kingdom'."""
    return " ".join(str(raw).split()).casefold()


@dataclass(frozen=True)
class GroupKey:
    """Hashable group identity.

    Equality and hashing use ``key``; ``label`` is the spelling shown to users
    (the first one seen in the table).
    """

    key: str
    label: str = field(compare=False)

    @classmethod
    def of(cls, raw: Any, normalize: bool = True) -> "GroupKey":
        label = str(raw).strip() if normalize else str(raw)
        return cls(key=canonical_key(raw) if normalize else str(raw), label=label)

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class ObservationSchema:
    group_column: str = "country"
    date_column: str = "date"
    cases_column: str = "total_cases"
    mobility_columns: Tuple[str, ...] = DEFAULT_MOBILITY_COLUMNS

    @property
    def numeric_columns(self) -> Tuple[str, ...]:
        return tuple(self.mobility_columns) + (self.cases_column,)

    @property
    def columns(self) -> Tuple[str, ...]:
        return (self.group_column, self.date_column) + self.numeric_columns

    def validate(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Check columns, coerce numerics and dates; returns a new frame."""
        require_columns(frame, self.columns)
        out = frame.copy()
        for col in self.numeric_columns:
            out[col] = coerce_numeric(out[col], col)
        out[self.date_column] = pd.to_datetime(out[self.date_column], errors="coerce")
        require_group_keys(out, self.group_column)
        return out


def as_frame(table: TableLike) -> pd.DataFrame:
    """Accept a DataFrame or a sequence of record mappings."""
    if isinstance(table, pd.DataFrame):
        frame = table
    else:
        frame = pd.DataFrame.from_records(list(table))
    if frame.empty:
        raise InvalidTableError("Table has no records", suggestion="Provide at least one record")
    return frame


def require_columns(frame: pd.DataFrame, columns: Iterable[str]) -> None:
    available = [str(c) for c in frame.columns]
    for col in columns:
        if col not in frame.columns:
            raise ColumnNotFoundError(col, available)


def require_group_keys(frame: pd.DataFrame, group_column: str) -> None:
    missing = frame[group_column].isna()
    if missing.any():
        rows: List[Any] = frame.index[missing].tolist()[:5]
        raise InvalidTableError(
            f"{int(missing.sum())} record(s) have no group key (first rows: {rows})",
            column=group_column,
            suggestion="Drop or fill records without a group key",
        )


def coerce_numeric(series: pd.Series, column: Optional[str] = None) -> pd.Series:
    """Return a float Series with NaN as the missing marker.

    Values that are present but cannot be read as numbers are an error, not
    missing data.
    """
    if pd.api.types.is_bool_dtype(series):
        raise ColumnTypeError(f"Column '{column}' is boolean, expected numeric", column=column)
    if pd.api.types.is_numeric_dtype(series):
        return series.astype(float).replace([np.inf, -np.inf], np.nan)

    # blank strings and literal "nan" count as missing
    series = series.replace(r"^\s*(?:[nN][aA][nN])?\s*$", np.nan, regex=True)
    converted = pd.to_numeric(series, errors="coerce")
    bad = converted.isna() & series.notna()
    if bad.any():
        sample = series[bad].astype(str).head(3).tolist()
        raise ColumnTypeError(
            f"Column '{column}' has non-numeric values: {sample}",
            column=column,
            suggestion="Clean the column or choose a numeric column",
        )
    return converted.astype(float).replace([np.inf, -np.inf], np.nan)
