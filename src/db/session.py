"""SQLAlchemy engine construction."""
from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url

from src.core.config import Settings, settings


def build_connect_args(db_url: URL, config: Settings) -> dict[str, Any]:
    """Driver specific connect arguments carrying timeouts and TLS."""

    timeout = config.db_statement_timeout_seconds
    connect_args: dict[str, Any] = {}
    if db_url.drivername.startswith("postgresql"):
        connect_args["connect_timeout"] = timeout
        connect_args["options"] = f"-c statement_timeout={timeout * 1000}"
        if config.database_ssl_required:
            connect_args["sslmode"] = "require"
    elif db_url.drivername.startswith("mysql"):
        connect_args["connect_timeout"] = timeout
        connect_args["read_timeout"] = timeout
        connect_args["write_timeout"] = timeout
        if config.database_ssl_required:
            connect_args["ssl"] = {"check_hostname": True}
    elif db_url.drivername.startswith("sqlite"):
        connect_args["timeout"] = timeout
        connect_args["check_same_thread"] = False
    return connect_args


def create_db_engine(config: Settings) -> Engine:
    """Create the process wide engine with a bounded connection pool."""

    db_url = make_url(config.database_url)
    engine_kwargs: dict[str, Any] = {
        "future": True,
        "pool_pre_ping": True,
        "connect_args": build_connect_args(db_url, config),
    }
    if not db_url.drivername.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_timeout=config.db_pool_timeout_seconds,
        )
    return create_engine(db_url, **engine_kwargs)


# The engine is created once and reused for all requests.
engine = create_db_engine(settings)
