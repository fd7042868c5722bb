"""Haul Ledger Flask application factory."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

import click
from flask import Flask, current_app, g, session

from .config import AppConfig, load_config
from .database import create_db_engine, init_schema
from .gemini import GeminiClient
from .repositories import RecordsRepository


def create_app(config: AppConfig | None = None) -> Flask:
    """Build and configure the Haul Ledger Flask application instance.

    Args:
        config: Optional :class:`AppConfig` override. When ``None`` the helper
            loads configuration via :func:`load_config`, which honours
            environment variables and a local ``.env`` file.

    Returns:
        Flask: Initialised application. The SQLAlchemy engine is stored on
        ``app.config['DB_ENGINE']`` and the resolved settings on
        ``app.config['HAUL_CONFIG']`` for downstream helpers.
    """

    app = Flask(__name__, instance_relative_config=True)
    app_config = config or load_config()
    app.config.update(
        SECRET_KEY=app_config.secret_key,
        MAX_CONTENT_LENGTH=app_config.max_content_length,
    )
    engine = create_db_engine(app_config.database_url)
    init_schema(engine)
    app.config["DB_ENGINE"] = engine
    app.config["HAUL_CONFIG"] = app_config

    from .blueprints.records import records_bp

    app.register_blueprint(records_bp)

    @app.teardown_appcontext
    def teardown(_: Any) -> None:
        g.pop("records_repo", None)
        g.pop("gemini_client", None)

    @app.cli.command("init-db")
    def init_db_command() -> None:
        """Initialize the database tables."""

        init_schema(engine)
        click.echo("Database initialized.")

    return app


def get_repository() -> RecordsRepository:
    """Return a repository cached on :mod:`flask.g` for the active request."""

    if not hasattr(g, "records_repo"):
        app_config: AppConfig = current_app.config["HAUL_CONFIG"]
        g.records_repo = RecordsRepository(
            current_app.config["DB_ENGINE"], app_config.default_rates
        )
    return g.records_repo


def get_gemini_client() -> GeminiClient:
    """Return a Gemini client built from the application settings."""

    if not hasattr(g, "gemini_client"):
        app_config: AppConfig = current_app.config["HAUL_CONFIG"]
        g.gemini_client = GeminiClient(
            app_config.gemini_api_key,
            app_config.gemini_model,
            timeout=app_config.gemini_timeout,
        )
    return g.gemini_client


def current_user_id() -> str:
    """Return the anonymous user ID bound to this browser session.

    A random ID is issued on first use and kept in the signed session
    cookie; every record and rate setting is scoped to it.
    """

    user_id = session.get("user_id")
    if not user_id:
        user_id = uuid4().hex
        session["user_id"] = user_id
        session.permanent = True
        current_app.logger.info("Issued anonymous user id %s", user_id)
    return user_id


__all__ = [
    "AppConfig",
    "create_app",
    "current_user_id",
    "get_gemini_client",
    "get_repository",
]
