import logging
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mobility_engine.stats.schema import DEFAULT_MOBILITY_COLUMNS, ObservationSchema


class Settings(BaseSettings):
    """
    Central config loaded from environment variables and optionally .env (local).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------
    # Local persistence (parquet datasets + cached fit results)
    # -------------------------
    data_dir: str = Field("./data", alias="DATA_DIR")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # -------------------------
    # Fitting
    # -------------------------
    min_observations: int = Field(2, alias="MIN_OBSERVATIONS")
    normalize_group_keys: bool = Field(True, alias="NORMALIZE_GROUP_KEYS")
    result_cache_enabled: bool = Field(True, alias="RESULT_CACHE_ENABLED")

    # -------------------------
    # Observation table columns
    # MOBILITY_COLUMNS is read as a JSON list, e.g. '["parks","workplaces"]'
    # -------------------------
    group_column: str = Field("country", alias="GROUP_COLUMN")
    date_column: str = Field("date", alias="DATE_COLUMN")
    cases_column: str = Field("total_cases", alias="CASES_COLUMN")
    mobility_columns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_MOBILITY_COLUMNS), alias="MOBILITY_COLUMNS"
    )

    # -------------------------
    # DuckDB
    # -------------------------
    duckdb_threads: int = Field(4, alias="DUCKDB_THREADS")
    duckdb_memory_limit: str = Field("1GB", alias="DUCKDB_MEMORY_LIMIT")

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    @field_validator("min_observations")
    @classmethod
    def _at_least_two(cls, v: int) -> int:
        if v < 2:
            raise ValueError("MIN_OBSERVATIONS must be at least 2")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    def observation_schema(self) -> ObservationSchema:
        return ObservationSchema(
            group_column=self.group_column,
            date_column=self.date_column,
            cases_column=self.cases_column,
            mobility_columns=tuple(self.mobility_columns),
        )


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup shared by the API and the CLI."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("mobility_engine").setLevel(level)


settings = Settings()
