from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class SlopeRequest(BaseModel):
    response: str
    predictor: str
    # Falls back to GROUP_COLUMN from settings
    group_key: Optional[str] = None
    on_insufficient: Literal["raise", "skip"] = "raise"


class InlineSlopeRequest(SlopeRequest):
    records: List[Dict[str, Any]] = Field(..., min_length=1)


class SlopeGridRequest(BaseModel):
    response: str
    # Empty means every mobility column of the dataset
    predictors: List[str] = Field(default_factory=list)
    group_key: Optional[str] = None


class GroupFit(BaseModel):
    group: str
    intercept: float
    slope: float
    n_obs: int
    r_squared: Optional[float] = None
    slope_stderr: Optional[float] = None
    p_value: Optional[float] = None


class SkippedGroup(BaseModel):
    group: str
    n_usable: int
    reason: str
    predictor: Optional[str] = None


class SlopeResponse(BaseModel):
    group_key: str
    response: str
    predictor: str
    slopes: Dict[str, float]
    fits: List[GroupFit] = Field(default_factory=list)
    skipped: List[SkippedGroup] = Field(default_factory=list)
    cached: bool = False


class SlopeGridRow(BaseModel):
    group: str
    predictor: str
    slope: float
    intercept: float
    r_squared: Optional[float] = None
    n_obs: int


class SlopeGridResponse(BaseModel):
    group_key: str
    response: str
    rows: List[SlopeGridRow] = Field(default_factory=list)
    skipped: List[SkippedGroup] = Field(default_factory=list)
    cached: bool = False
