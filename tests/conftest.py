"""
Pytest configuration and fixtures
"""
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from mobility_engine.stats.schema import DEFAULT_MOBILITY_COLUMNS, ObservationSchema

# Exact per-country relationship total_cases = INTERCEPTS + SLOPES * parks
SLOPES = {"Italy": -50.0, "Spain": -20.0, "Norway": 5.0}
INTERCEPTS = {"Italy": 1000.0, "Spain": 400.0, "Norway": 30.0}


@pytest.fixture
def mobility_frame() -> pd.DataFrame:
    """Three countries, ten days each, parks missing on one Italian day."""
    rng = np.random.default_rng(0)
    dates = pd.date_range("2020-03-01", periods=10, freq="D")
    rows = []
    for country, slope in SLOPES.items():
        parks = np.linspace(-60.0, 10.0, len(dates))
        for i, day in enumerate(dates):
            row = {"country": country, "date": day.strftime("%Y-%m-%d")}
            for col in DEFAULT_MOBILITY_COLUMNS:
                row[col] = float(rng.normal(-20, 15))
            row["parks"] = float(parks[i])
            row["total_cases"] = INTERCEPTS[country] + slope * parks[i]
            rows.append(row)
    df = pd.DataFrame(rows)
    df.loc[3, "parks"] = np.nan
    return df


@pytest.fixture
def mobility_csv(tmp_path: Path, mobility_frame: pd.DataFrame) -> Path:
    path = tmp_path / "mobility.csv"
    mobility_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def schema() -> ObservationSchema:
    return ObservationSchema()


@pytest.fixture
def store(tmp_path: Path, schema: ObservationSchema):
    from mobility_engine.services.dataset_store import DatasetStore

    return DatasetStore(tmp_path / "data", schema=schema)


@pytest.fixture
def client(store):
    """API client bound to a temporary dataset store."""
    from fastapi.testclient import TestClient

    from mobility_engine.api.deps import get_fit_service, get_store
    from mobility_engine.main import app
    from mobility_engine.services.fits_service import FitService

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_fit_service] = lambda: FitService(store)
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
