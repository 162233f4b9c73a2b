"""HTML directory index. This is the catch-all route, so it must be included last."""

from typing import Annotated

import jinja2
import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from app.config.config import Settings
from app.routers.files import get_settings
from app.services.directory_scanner import scan_with_timeout
from app.services.errors import ListingError
from app.services.path_resolver import decode_request_path, resolve_with_timeout
from app.services.templates import ListingTemplates, internal_error_response

router = APIRouter(tags=["index"])
logger = structlog.get_logger(__name__)


def get_templates(request: Request) -> ListingTemplates:
    """FastAPI dependency — reads from app.state.templates."""
    return request.app.state.templates


def _requested_path(request: Request) -> str:
    # raw_path keeps the undecoded bytes, so malformed UTF-8 can be rejected
    raw_path = request.scope.get("raw_path")
    if raw_path is None:
        return request.url.path
    return decode_request_path(raw_path)


def _error_page(request: Request, templates: ListingTemplates, exc: ListingError) -> Response:
    try:
        return templates.render_error(request, exc.status_code, str(exc))
    except jinja2.TemplateError:
        logger.error("template_render_failed", template=ListingTemplates.ERROR, exc_info=True)
        return internal_error_response()


@router.get("/{full_path:path}", response_class=HTMLResponse, include_in_schema=False)
async def directory_index(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    templates: Annotated[ListingTemplates, Depends(get_templates)],
) -> Response:
    service = settings.service
    try:
        requested = _requested_path(request)
        directory = await resolve_with_timeout(requested, service.roots, service.scan_timeout_seconds)
        # Relative links in the page only work from a URL ending in '/'
        if not requested.endswith("/"):
            location = directory.href_prefix
            if request.url.query:
                location = f"{location}?{request.url.query}"
            return RedirectResponse(location, status_code=status.HTTP_308_PERMANENT_REDIRECT)
        outcome = await scan_with_timeout(directory, service.effective_limit, service.scan_timeout_seconds)
    except ListingError as exc:
        logger.info("listing_rejected", error=type(exc).__name__)
        return _error_page(request, templates, exc)

    logger.info(
        "listing_served",
        href_prefix=directory.href_prefix,
        entries=len(outcome.result.entries),
        maybe_truncated=outcome.result.maybe_truncated,
        skipped=len(outcome.skipped),
    )
    try:
        return templates.render_index(request, outcome.result, directory.href_prefix)
    except jinja2.TemplateError:
        logger.error("template_render_failed", template=ListingTemplates.INDEX, exc_info=True)
        return internal_error_response()
