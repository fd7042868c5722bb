"""Test fixtures for the Haul Ledger app."""

from __future__ import annotations

from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from haul_common import RateConfig
from haul_ledger_web import AppConfig, create_app


@pytest.fixture()
def rates() -> RateConfig:
    """Return the default rates used throughout the tests."""

    return RateConfig(
        fuel_price_per_liter=12000, revenue_per_ton=85000, labor_cost_per_ton=15000
    )


@pytest.fixture()
def app(tmp_path: Path):
    """Return a Flask app configured for testing."""

    db_path = tmp_path / "test.db"
    config = AppConfig(
        database_url=f"sqlite:///{db_path}",
        secret_key="testing",
        max_content_length=1024 * 1024,
        gemini_api_key="test-key",
    )
    application = create_app(config)
    application.config.update(TESTING=True)
    yield application


@pytest.fixture()
def client(app):
    """Return a Flask test client."""

    return app.test_client()
