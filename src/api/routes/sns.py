"""Inbound webhook handler for SES notifications delivered through SNS."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from src.api.dependencies import get_ingestor
from src.db import models
from src.services.bounce_handler import BounceIngestor, IngestResult, IngestStatus

router = APIRouter(tags=["sns"])


def _to_response(result: IngestResult) -> Response:
    if result.status is IngestStatus.SUCCESS:
        return JSONResponse({"status": "success"})
    if result.status is IngestStatus.CONFLICT:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "fail", "message": result.message},
        )
    if result.status is IngestStatus.SERVER_ERROR:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "message": result.message},
        )
    if result.status is IngestStatus.REJECTED:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"status": "fail", "message": result.message},
        )
    return PlainTextResponse("ok")


@router.post("/{tenant_id}/sns-endpoint")
async def handle_sns_notification(
    request: Request,
    tenant_id: int = Path(..., gt=0, le=models.MAX_TENANT_ID),
    ingestor: BounceIngestor = Depends(get_ingestor),
) -> Response:
    """Blacklist bounced recipients for a tenant.

    The raw body is decoded here rather than by FastAPI so that malformed
    requests are still acknowledged with 200 and SNS stops redelivering them.
    """

    raw = await request.body()
    result = await run_in_threadpool(ingestor.ingest, tenant_id, raw)
    return _to_response(result)
