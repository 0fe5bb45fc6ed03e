from __future__ import annotations

from fastapi import APIRouter, Depends

from mobility_engine.api.deps import get_fit_service, http_error
from mobility_engine.config import settings
from mobility_engine.models.fits import (
    InlineSlopeRequest,
    SlopeGridRequest,
    SlopeGridResponse,
    SlopeRequest,
    SlopeResponse,
)
from mobility_engine.services.dataset_store import DatasetNotFoundError
from mobility_engine.services.fits_service import FitService
from mobility_engine.stats.errors import FitError

router = APIRouter()


@router.post("/datasets/{dataset_id}/slopes", response_model=SlopeResponse)
def dataset_slopes(
    dataset_id: str,
    req: SlopeRequest,
    service: FitService = Depends(get_fit_service),
):
    try:
        result, cached = service.slopes_for_dataset(
            dataset_id,
            group_key=req.group_key or settings.group_column,
            response=req.response,
            predictor=req.predictor,
            on_insufficient=req.on_insufficient,
        )
    except (DatasetNotFoundError, FitError, ValueError) as e:
        raise http_error(e)

    return SlopeResponse(**result, cached=cached)


@router.post("/datasets/{dataset_id}/slope-grid", response_model=SlopeGridResponse)
def dataset_slope_grid(
    dataset_id: str,
    req: SlopeGridRequest,
    service: FitService = Depends(get_fit_service),
):
    try:
        result, cached = service.slope_grid_for_dataset(
            dataset_id,
            group_key=req.group_key or settings.group_column,
            response=req.response,
            predictors=req.predictors,
        )
    except (DatasetNotFoundError, FitError, ValueError) as e:
        raise http_error(e)

    return SlopeGridResponse(**result, cached=cached)


@router.post("/slopes", response_model=SlopeResponse)
def inline_slopes(
    req: InlineSlopeRequest,
    service: FitService = Depends(get_fit_service),
):
    group_key = req.group_key or settings.group_column
    try:
        result = service.slopes_for_records(
            req.records,
            group_key,
            req.response,
            req.predictor,
            on_insufficient=req.on_insufficient,
        )
    except (FitError, ValueError) as e:
        raise http_error(e)

    return SlopeResponse(**result)
