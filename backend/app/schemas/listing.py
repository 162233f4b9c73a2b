"""Pydantic models for directory listings, shared by the JSON API and the HTML index."""

from pydantic import BaseModel, ConfigDict, Field


class Entry(BaseModel):
    """One immediate child of a listed directory."""

    model_config = ConfigDict(frozen=True)

    name: str
    is_dir: bool
    size: int = Field(ge=0)
    href: str
    datetime: int = Field(ge=0, description="Last-modified time, Unix epoch seconds.")


class ListingResult(BaseModel):
    """Entries of a directory, in filesystem enumeration order.

    The order carries no meaning and callers must not rely on it.
    """

    model_config = ConfigDict(frozen=True)

    entries: list[Entry]
    maybe_truncated: bool


class ListingRequest(BaseModel):
    """Request body for POST /api/files."""

    path: str = "/"


class ErrorResponse(BaseModel):
    detail: str
