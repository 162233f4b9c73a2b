"""Jinja2 rendering of directory listings and error pages."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import jinja2
from fastapi import Request, status
from fastapi.responses import PlainTextResponse, Response
from fastapi.templating import Jinja2Templates

from app.schemas.listing import ListingResult


class TemplateLoadError(Exception):
    def __init__(self, component: str, path: Path, reason: str) -> None:
        super().__init__(f"failed to load {component} template from {path}: {reason}")
        self.component = component
        self.path = path


def from_mtimestamp(value: int) -> str:
    """Format Unix epoch seconds as a UTC ``YYYY-MM-DD HH:MM:SS`` string."""
    try:
        return datetime.fromtimestamp(int(value), tz=UTC).strftime("%Y-%m-%d %H:%M:%S")
    except (TypeError, ValueError, OverflowError, OSError):
        return "Invalid timestamp"


def humanize_size(size: int) -> str:
    if size >= 1 << 30:
        return f"{size / (1 << 30):.2f} GiB"
    if size >= 1 << 20:
        return f"{size / (1 << 20):.2f} MiB"
    if size >= 1 << 10:
        return f"{size / (1 << 10):.2f} KiB"
    return f"{size} B"


def _read_template(component: str, path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TemplateLoadError(component, path, str(exc)) from exc


class ListingTemplates:
    """The configured index and error templates, compiled once at startup."""

    INDEX = "index"
    ERROR = "error"

    def __init__(self, index_file: Path, error_file: Path | None = None) -> None:
        paths = {self.INDEX: index_file}
        if error_file is not None:
            paths[self.ERROR] = error_file
        sources = {name: _read_template(name, path) for name, path in paths.items()}

        env = jinja2.Environment(loader=jinja2.DictLoader(sources), autoescape=True)
        env.filters["from_mtimestamp"] = from_mtimestamp
        env.filters["humanize_size"] = humanize_size
        for name, path in paths.items():
            try:
                env.get_template(name)
            except jinja2.TemplateSyntaxError as exc:
                raise TemplateLoadError(name, path, str(exc)) from exc

        self._templates = Jinja2Templates(env=env)
        self.has_error_page = error_file is not None

    def render_index(self, request: Request, listing: ListingResult, href_prefix: str) -> Response:
        return self._templates.TemplateResponse(
            request,
            self.INDEX,
            {"entry": listing.entries, "maybe_truncated": listing.maybe_truncated, "path": href_prefix},
        )

    def render_error(self, request: Request, status_code: int, message: str) -> Response:
        if not self.has_error_page:
            return PlainTextResponse(message, status_code=status_code)
        return self._templates.TemplateResponse(
            request,
            self.ERROR,
            {"status": status_code, "message": message},
            status_code=status_code,
        )


def internal_error_response() -> Response:
    return PlainTextResponse("Internal Server Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
