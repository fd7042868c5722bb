"""Configuration helpers for the Haul Ledger web application."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from secrets import token_urlsafe
from typing import Optional

from dotenv import load_dotenv

from haul_common import RateConfig

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-preview-09-2025"


def _resolve_secret_key() -> str:
    """Return the session secret, generating a one-time key when unset."""

    configured = os.getenv("HAUL_SECRET_KEY")
    if configured:
        return configured

    logging.getLogger("haul_ledger.config").warning(
        "HAUL_SECRET_KEY environment variable is not set; generated a one-time key."
    )
    return token_urlsafe(32)


@dataclass(slots=True)
class AppConfig:
    """Settings loaded from environment variables."""

    database_url: str
    secret_key: str
    max_content_length: int = 16 * 1024 * 1024
    default_rates: RateConfig = field(default_factory=RateConfig)
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_timeout: float = 30.0


def load_config() -> AppConfig:
    """Create an :class:`AppConfig` instance from environment variables.

    A ``.env`` file in the working directory is honoured via
    :func:`dotenv.load_dotenv`; variables already exported win.
    """

    load_dotenv()
    database = os.getenv(
        "HAUL_DATABASE", "sqlite:///" + str(Path("instance/haul_ledger.db"))
    )
    if database.startswith("sqlite:///"):
        Path(database[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    default_rates = RateConfig.from_dict(
        {
            key: value
            for key, value in (
                ("fuel_price_per_liter", os.getenv("HAUL_FUEL_PRICE")),
                ("revenue_per_ton", os.getenv("HAUL_REVENUE_PER_TON")),
                ("labor_cost_per_ton", os.getenv("HAUL_LABOR_PER_TON")),
            )
            if value
        }
    )
    return AppConfig(
        database_url=database,
        secret_key=_resolve_secret_key(),
        max_content_length=int(os.getenv("HAUL_MAX_CONTENT_LENGTH", "16777216")),
        default_rates=default_rates,
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_timeout=float(os.getenv("GEMINI_TIMEOUT", "30")),
    )
