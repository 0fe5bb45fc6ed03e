"""Per-group linear fit analysis for mobility observation tables."""

from .errors import (
    ColumnNotFoundError,
    ColumnTypeError,
    FitError,
    InsufficientDataError,
    InvalidTableError,
)
from .regression import (
    FittedModel,
    GroupFits,
    SkippedGroup,
    SlopeMap,
    fit_group,
    fit_group_models,
    fit_slope_grid,
    fit_slopes,
    partition_by_group,
    usable_pairs,
)
from .schema import GroupKey, ObservationSchema

__all__ = [
    "ColumnNotFoundError",
    "ColumnTypeError",
    "FitError",
    "InsufficientDataError",
    "InvalidTableError",
    "FittedModel",
    "GroupFits",
    "SkippedGroup",
    "SlopeMap",
    "fit_group",
    "fit_group_models",
    "fit_slope_grid",
    "fit_slopes",
    "partition_by_group",
    "usable_pairs",
    "GroupKey",
    "ObservationSchema",
]
