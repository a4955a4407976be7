"""Shared FastAPI dependencies."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from src.core.config import settings
from src.db.blacklist_store import BlacklistStore, build_blacklist_store
from src.db.session import engine
from src.services.bounce_handler import BounceIngestor


@lru_cache()
def get_blacklist_store() -> BlacklistStore:
    """Return the store variant chosen for this process."""

    return build_blacklist_store(engine, settings.blacklist_backend)


def get_ingestor(store: BlacklistStore = Depends(get_blacklist_store)) -> BounceIngestor:
    return BounceIngestor.from_settings(store, settings)
