"""JSON directory listing API. Mounted only when ``service.json_api`` is enabled."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from app.config.config import Settings
from app.schemas.listing import ErrorResponse, ListingRequest, ListingResult
from app.services.directory_scanner import scan_with_timeout
from app.services.errors import ListingError
from app.services.path_resolver import resolve_with_timeout

router = APIRouter(prefix="/api", tags=["files"])
logger = structlog.get_logger(__name__)


def get_settings(request: Request) -> Settings:
    """FastAPI dependency — reads from app.state.settings."""
    return request.app.state.settings


@router.post(
    "/files",
    response_model=ListingResult,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def list_files(
    body: ListingRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ListingResult:
    """List the immediate entries of a directory. Entries are not sorted."""
    service = settings.service
    try:
        directory = await resolve_with_timeout(body.path, service.roots, service.scan_timeout_seconds)
        outcome = await scan_with_timeout(directory, service.effective_limit, service.scan_timeout_seconds)
    except ListingError as exc:
        logger.info("listing_rejected", error=type(exc).__name__)
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    logger.info(
        "listing_served",
        href_prefix=directory.href_prefix,
        entries=len(outcome.result.entries),
        maybe_truncated=outcome.result.maybe_truncated,
        skipped=len(outcome.skipped),
    )
    return outcome.result
