from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile

from mobility_engine.api.deps import get_store, http_error
from mobility_engine.models.datasets import DatasetCreateResponse, DatasetMetadataResponse
from mobility_engine.services.dataset_store import DatasetNotFoundError, DatasetStore

router = APIRouter()


@router.post("", response_model=DatasetCreateResponse)
def create_dataset(
    file: UploadFile = File(...),
    store: DatasetStore = Depends(get_store),
):
    try:
        meta = store.create_from_upload(file.file, file.filename)
    except ValueError as e:
        raise http_error(e)

    return DatasetCreateResponse(dataset_id=meta["dataset_id"], profile=meta["profile"])


@router.get("/{dataset_id}", response_model=DatasetMetadataResponse)
def get_dataset(dataset_id: str, store: DatasetStore = Depends(get_store)):
    try:
        meta = store.get(dataset_id)
    except DatasetNotFoundError as e:
        raise http_error(e)
    return DatasetMetadataResponse(**meta)
