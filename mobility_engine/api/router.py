from fastapi import APIRouter
from mobility_engine.routers import datasets, fits

api_router = APIRouter()
api_router.include_router(datasets.router, prefix="/datasets", tags=["datasets"])
api_router.include_router(fits.router, tags=["fits"])
