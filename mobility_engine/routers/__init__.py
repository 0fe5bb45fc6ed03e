"""
API Routers for Mobility Engine
"""

from .datasets import router as datasets_router
from .fits import router as fits_router

__all__ = [
    'datasets_router',
    'fits_router',
]
