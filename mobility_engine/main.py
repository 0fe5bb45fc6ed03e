import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mobility_engine import __version__
from mobility_engine.api.router import api_router
from mobility_engine.config import configure_logging, settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Mobility Engine",
        version=__version__,
        description="Per-group linear fits over COVID mobility datasets (DuckDB + statsmodels)",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return {"ok": True, "version": __version__}

    logger.info("Mobility Engine %s ready (data_dir=%s)", __version__, settings.data_dir)
    return app


app = create_app()
