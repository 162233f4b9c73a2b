"""PathResolver — maps an untrusted request path onto a directory inside a document root.

This module is the only place that turns client input into filesystem paths.
Containment is checked on the canonical path (symlinks resolved), never on the
request string.
"""

from __future__ import annotations

import asyncio
import errno
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import quote, unquote_to_bytes

import structlog
from pydantic import BaseModel, ConfigDict, field_validator

from app.services.errors import (
    InvalidPath,
    ListingIOError,
    NotADirectory,
    NotFound,
    PathOutOfRoot,
    PermissionDenied,
    ScanTimeout,
)

logger = structlog.get_logger(__name__)


class DocumentRoot(BaseModel):
    """A URL prefix served from a canonical filesystem directory."""

    model_config = ConfigDict(frozen=True)

    prefix: str = "/"
    directory: Path

    @field_validator("prefix")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        segments = split_segments(v)
        if any(s in (".", "..") for s in segments):
            raise ValueError(f"URL prefix must not contain '.' or '..' segments: {v!r}")
        return "/" + "".join(f"{s}/" for s in segments)

    @field_validator("directory")
    @classmethod
    def _canonicalize_directory(cls, v: Path) -> Path:
        try:
            canonical = Path(v).expanduser().resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            raise ValueError(f"Document root does not exist: {v}") from exc
        if not canonical.is_dir():
            raise ValueError(f"Document root is not a directory: {v}")
        return canonical

    @property
    def segments(self) -> list[str]:
        return split_segments(self.prefix)


class ValidatedPath(BaseModel):
    """A canonical directory inside a document root, plus the URL it is served under."""

    model_config = ConfigDict(frozen=True)

    fs_path: Path
    href_prefix: str


def split_segments(path: str) -> list[str]:
    return [s for s in path.split("/") if s]


def decode_request_path(raw_path: bytes) -> str:
    """Percent-decode a raw ASGI path, rejecting anything that is not UTF-8.

    Servers decode with ``errors="replace"``, which would silently turn a
    malformed path into a different, valid-looking one.
    """
    raw_path = raw_path.split(b"?", 1)[0]
    try:
        return unquote_to_bytes(raw_path).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidPath() from exc


def _check_well_formed(requested_path: str) -> None:
    if "\x00" in requested_path:
        raise InvalidPath()
    try:
        requested_path.encode("utf-8")
    except UnicodeEncodeError as exc:
        # Lone surrogates: the path was decoded from non-UTF-8 bytes.
        raise InvalidPath() from exc


def _normalize(segments: Iterable[str]) -> list[str]:
    """Collapse '.' and '..' segments. Climbing above the first segment is an escape."""
    result: list[str] = []
    for segment in segments:
        if segment == ".":
            continue
        if segment == "..":
            if not result:
                raise PathOutOfRoot()
            result.pop()
            continue
        result.append(segment)
    return result


def select_root(requested_path: str, roots: Iterable[DocumentRoot]) -> DocumentRoot:
    """Return the root with the longest URL prefix that covers ``requested_path``.

    Prefixes are matched segment by segment on the raw request, before any
    '..' collapsing, so a path can never hop from one root into another.
    """
    _check_well_formed(requested_path)
    raw = split_segments(requested_path)
    best: DocumentRoot | None = None
    for root in roots:
        prefix = root.segments
        if raw[: len(prefix)] != prefix:
            continue
        if best is None or len(prefix) > len(best.segments):
            best = root
    if best is None:
        raise NotFound()
    return best


def resolve(requested_path: str, root: DocumentRoot) -> ValidatedPath:
    """Resolve ``requested_path`` to a canonical directory inside ``root``.

    Raises InvalidPath, PathOutOfRoot, NotFound, NotADirectory or
    PermissionDenied. Only reads filesystem metadata.
    """
    _check_well_formed(requested_path)
    raw = split_segments(requested_path)
    prefix = root.segments
    if raw[: len(prefix)] != prefix:
        raise NotFound()
    relative = _normalize(raw[len(prefix) :])

    candidate = root.directory.joinpath(*relative)
    try:
        canonical = candidate.resolve(strict=True)
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFound() from exc
    except PermissionError as exc:
        raise PermissionDenied() from exc
    except RuntimeError as exc:
        # Symlink loop on Python < 3.13
        raise NotFound() from exc
    except OSError as exc:
        if exc.errno == errno.ELOOP:
            raise NotFound() from exc
        if exc.errno == errno.ENAMETOOLONG:
            raise InvalidPath() from exc
        raise ListingIOError() from exc

    if not canonical.is_relative_to(root.directory):
        raise PathOutOfRoot()
    if not canonical.is_dir():
        raise NotADirectory()

    href_prefix = root.prefix + "".join(f"{quote(s, safe='')}/" for s in relative)
    return ValidatedPath(fs_path=canonical, href_prefix=href_prefix)


def resolve_request(requested_path: str, roots: Iterable[DocumentRoot]) -> ValidatedPath:
    """Pick the document root serving ``requested_path`` and resolve the path inside it."""
    return resolve(requested_path, select_root(requested_path, roots))


async def resolve_with_timeout(requested_path: str, roots: Iterable[DocumentRoot], timeout: float) -> ValidatedPath:
    """Run ``resolve_request`` in a worker thread, giving up after ``timeout`` seconds."""
    try:
        return await asyncio.wait_for(asyncio.to_thread(resolve_request, requested_path, roots), timeout=timeout)
    except TimeoutError as exc:
        # A stalled lookup cannot be interrupted; its thread is left to finish on its own.
        logger.warning("resolve_timeout", timeout=timeout)
        raise ScanTimeout() from exc
