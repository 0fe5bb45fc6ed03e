"""
Per-group linear fits.

Partitions an observation table by a group key, fits ``response ~ predictor``
by ordinary least squares inside every partition and reads the coefficients
back out. Records with a missing response or predictor are excluded from the
fit that needs them.

Typical use:

    >>> fit_slopes(df, "country", "total_cases", "parks")
    {'Italy': -812.4, 'Spain': -655.1, ...}
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .errors import InsufficientDataError
from .schema import (
    GroupKey,
    TableLike,
    as_frame,
    canonical_key,
    coerce_numeric,
    require_columns,
    require_group_keys,
)

logger = logging.getLogger(__name__)

MIN_OBSERVATIONS = 2
ON_INSUFFICIENT = ("raise", "skip")
GRID_COLUMNS = ["group", "predictor", "slope", "intercept", "r_squared", "n_obs"]


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass(frozen=True)
class FittedModel:
    group: str
    intercept: float
    slope: float
    n_obs: int
    r_squared: Optional[float] = None
    slope_stderr: Optional[float] = None
    p_value: Optional[float] = None

    def predict(self, x: Any) -> np.ndarray:
        return self.intercept + self.slope * np.asarray(x, dtype=float)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SkippedGroup:
    group: str
    n_usable: int
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SlopeMap(dict):
    """group label -> slope, plus the groups left out of the mapping."""

    def __init__(self, *args, skipped: Optional[Iterable[SkippedGroup]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.skipped: List[SkippedGroup] = list(skipped or [])


@dataclass
class GroupFits:
    response: str
    predictor: str
    models: Dict[str, FittedModel] = field(default_factory=dict)
    skipped: List[SkippedGroup] = field(default_factory=list)

    def slopes(self) -> SlopeMap:
        return SlopeMap(
            {group: m.slope for group, m in self.models.items()},
            skipped=self.skipped,
        )


# ============================================================================
# PARTITIONING
# ============================================================================

def partition_by_group(
    frame: pd.DataFrame,
    group_key: str,
    normalize_keys: bool = True,
) -> Dict[GroupKey, pd.DataFrame]:
    """Split ``frame`` into disjoint partitions, in first-seen group order."""
    raw = frame[group_key]
    canon = raw.map(canonical_key) if normalize_keys else raw.astype(str)

    parts: Dict[GroupKey, pd.DataFrame] = {}
    for _, part in frame.groupby(canon, sort=False):
        parts[GroupKey.of(part[group_key].iloc[0], normalize_keys)] = part
    return parts


def usable_pairs(frame: pd.DataFrame, response: str, predictor: str) -> pd.DataFrame:
    """Rows where both values are present, as columns ``x`` (predictor) and ``y`` (response)."""
    pairs = pd.DataFrame(
        {
            "x": coerce_numeric(frame[predictor], predictor),
            "y": coerce_numeric(frame[response], response),
        },
        index=frame.index,
    )
    return pairs.dropna()


# ============================================================================
# FITTING
# ============================================================================

def _finite_or_none(value: Any) -> Optional[float]:
    v = float(value)
    return v if np.isfinite(v) else None


def fit_group(
    group: Any,
    frame: pd.DataFrame,
    response: str,
    predictor: str,
    min_obs: int = MIN_OBSERVATIONS,
) -> FittedModel:
    """OLS fit of ``response ~ predictor`` for a single partition."""
    label = str(group)
    pairs = usable_pairs(frame, response, predictor)
    n = int(len(pairs))

    if n < min_obs:
        raise InsufficientDataError(label, n, f"{n} usable record(s), need at least {min_obs}")

    x = pairs["x"].to_numpy(dtype=float)
    y = pairs["y"].to_numpy(dtype=float)

    if np.ptp(x) == 0:
        raise InsufficientDataError(
            label,
            n,
            f"predictor is constant across all {n} usable records, slope is undefined (no variance)",
        )

    # Centered fit; raw cumulative counts give an ill-conditioned design
    x_mean, y_mean = x.mean(), y.mean()
    X = sm.add_constant(x - x_mean, has_constant="add")
    model = sm.OLS(y - y_mean, X).fit()
    b0, slope = (float(v) for v in model.params)
    intercept = float(y_mean + b0 - slope * x_mean)

    # Perfect or two-point fits leave some of these undefined
    with np.errstate(divide="ignore", invalid="ignore"):
        r_squared = _finite_or_none(model.rsquared)
        slope_stderr = p_value = None
        if model.df_resid > 0:
            slope_stderr = _finite_or_none(model.bse[1])
            p_value = _finite_or_none(model.pvalues[1])

    return FittedModel(
        group=label,
        intercept=intercept,
        slope=slope,
        n_obs=n,
        r_squared=r_squared,
        slope_stderr=slope_stderr,
        p_value=p_value,
    )


def _prepare(
    table: TableLike,
    group_key: str,
    columns: Sequence[str],
    on_insufficient: str,
    min_obs: int,
) -> pd.DataFrame:
    if on_insufficient not in ON_INSUFFICIENT:
        raise ValueError(f"on_insufficient must be one of {ON_INSUFFICIENT}, got {on_insufficient!r}")
    if min_obs < MIN_OBSERVATIONS:
        raise ValueError(f"min_obs must be at least {MIN_OBSERVATIONS}")

    frame = as_frame(table)
    # Column checks come before any partitioning
    require_columns(frame, [group_key, *columns])
    require_group_keys(frame, group_key)

    numeric = list(dict.fromkeys(c for c in columns if c != group_key))
    out = frame[[group_key]].copy()
    for col in numeric:
        out[col] = coerce_numeric(frame[col], col)
    return out


def _fit_partitions(
    parts: Dict[GroupKey, pd.DataFrame],
    response: str,
    predictor: str,
    on_insufficient: str,
    min_obs: int,
) -> GroupFits:
    fits = GroupFits(response=response, predictor=predictor)
    for key, part in parts.items():
        try:
            fits.models[key.label] = fit_group(key, part, response, predictor, min_obs=min_obs)
        except InsufficientDataError as e:
            if on_insufficient == "raise":
                raise
            logger.warning("Skipping group %r for %s ~ %s: %s", key.label, response, predictor, e.reason)
            fits.skipped.append(SkippedGroup(group=key.label, n_usable=e.n_usable, reason=e.reason))

    logger.debug(
        "Fitted %d group(s) for %s ~ %s, skipped %d",
        len(fits.models), response, predictor, len(fits.skipped),
    )
    return fits


def fit_group_models(
    table: TableLike,
    group_key: str,
    response: str,
    predictor: str,
    on_insufficient: str = "raise",
    min_obs: int = MIN_OBSERVATIONS,
    normalize_keys: bool = True,
) -> GroupFits:
    """Fit one model per group.

    With ``on_insufficient="raise"`` the first group lacking usable data
    raises ``InsufficientDataError``; with ``"skip"`` it is recorded in
    ``GroupFits.skipped`` instead.
    """
    frame = _prepare(table, group_key, [response, predictor], on_insufficient, min_obs)
    parts = partition_by_group(frame, group_key, normalize_keys=normalize_keys)
    return _fit_partitions(parts, response, predictor, on_insufficient, min_obs)


def fit_slopes(
    table: TableLike,
    group_key: str,
    response: str,
    predictor: str,
    on_insufficient: str = "raise",
    min_obs: int = MIN_OBSERVATIONS,
    normalize_keys: bool = True,
) -> SlopeMap:
    """Slope of ``response ~ predictor`` for every group with enough usable records."""
    return fit_group_models(
        table,
        group_key,
        response,
        predictor,
        on_insufficient=on_insufficient,
        min_obs=min_obs,
        normalize_keys=normalize_keys,
    ).slopes()


def fit_slope_grid(
    table: TableLike,
    group_key: str,
    response: str,
    predictors: Sequence[str],
    min_obs: int = MIN_OBSERVATIONS,
    normalize_keys: bool = True,
) -> pd.DataFrame:
    """Fit every (group, predictor) pair and return a long table.

    Pairs without enough data are left out and listed in
    ``result.attrs["skipped"]``.
    """
    if not predictors:
        raise ValueError("At least one predictor is required")

    frame = _prepare(table, group_key, [response, *predictors], "skip", min_obs)
    parts = partition_by_group(frame, group_key, normalize_keys=normalize_keys)

    rows: List[Dict[str, Any]] = []
    skipped: List[Dict[str, Any]] = []
    for predictor in predictors:
        fits = _fit_partitions(parts, response, predictor, "skip", min_obs)
        for m in fits.models.values():
            rows.append({
                "group": m.group,
                "predictor": predictor,
                "slope": m.slope,
                "intercept": m.intercept,
                "r_squared": m.r_squared,
                "n_obs": m.n_obs,
            })
        skipped.extend({"predictor": predictor, **s.to_dict()} for s in fits.skipped)

    grid = pd.DataFrame(rows, columns=GRID_COLUMNS)
    grid.attrs["skipped"] = skipped
    logger.info(
        "Slope grid for %s: %d fit(s) over %d predictor(s), %d skipped",
        response, len(grid), len(predictors), len(skipped),
    )
    return grid
