"""Blacklist lookup endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.api.dependencies import get_blacklist_store
from src.db import models
from src.db.blacklist_store import BlacklistStore, StorageError
from src.utils.logger import logger

router = APIRouter(tags=["blacklist"])


class BlacklistStatus(BaseModel):
    blacklisted: bool


class BlacklistLookupResponse(BaseModel):
    success: bool = True
    data: BlacklistStatus


@router.get("/{tenant_id}/is-blacklisted/{email}", response_model=BlacklistLookupResponse)
def is_blacklisted(
    email: str,
    tenant_id: int = Path(..., gt=0, le=models.MAX_TENANT_ID),
    store: BlacklistStore = Depends(get_blacklist_store),
):
    """Tell the sending system whether an address must be skipped."""

    try:
        blacklisted = store.lookup(tenant_id, email)
    except StorageError as exc:
        logger.exception("Blacklist lookup failed for tenant %s", tenant_id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(exc)},
        )
    return BlacklistLookupResponse(data=BlacklistStatus(blacklisted=blacklisted))
