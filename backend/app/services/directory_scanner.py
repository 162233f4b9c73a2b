"""DirectoryScanner — enumerates a validated directory into listing entries."""

from __future__ import annotations

import asyncio
import os
import stat
import threading
from urllib.parse import quote

import structlog
from pydantic import BaseModel, Field

from app.schemas.listing import Entry, ListingResult
from app.services.errors import (
    ListingError,
    ListingIOError,
    NotADirectory,
    NotFound,
    PermissionDenied,
    ScanTimeout,
)
from app.services.path_resolver import ValidatedPath

logger = structlog.get_logger(__name__)


class SkippedEntry(BaseModel):
    """A child whose metadata could not be read. It is left out of the listing."""

    name: str
    reason: str


class ScanOutcome(BaseModel):
    result: ListingResult
    skipped: list[SkippedEntry] = Field(default_factory=list)


def _display_name(name: str) -> str:
    # scandir hands back undecodable bytes as surrogate escapes
    return os.fsencode(name).decode("utf-8", "replace")


def _make_entry(dir_entry: os.DirEntry, href_prefix: str) -> Entry:
    # Symlinks are not followed: targets outside the root stay undisclosed.
    st = dir_entry.stat(follow_symlinks=False)
    is_dir = stat.S_ISDIR(st.st_mode)
    name = _display_name(dir_entry.name)
    return Entry(
        name=name,
        is_dir=is_dir,
        size=st.st_size,
        href=f"{href_prefix}{quote(name, safe='')}{'/' if is_dir else ''}",
        datetime=max(0, int(st.st_mtime)),
    )


def _fatal(exc: OSError) -> ListingError:
    if isinstance(exc, FileNotFoundError):
        return NotFound()
    if isinstance(exc, NotADirectoryError):
        return NotADirectory()
    if isinstance(exc, PermissionError):
        return PermissionDenied()
    return ListingIOError()


def scan(path: ValidatedPath, limit: int, cancel: threading.Event | None = None) -> ScanOutcome:
    """List the immediate children of ``path``, at most ``limit`` of them.

    Children come back in the order the filesystem yields them. When the
    directory holds more than ``limit`` children, only the first ``limit``
    enumerated ones are looked at and ``maybe_truncated`` is set. A child that
    cannot be stat'ed still uses up its slot, but it is skipped instead of
    failing the whole scan.

    ``cancel`` is checked between children; once set, the scan stops with
    ScanTimeout. Failing to open or read the directory itself raises a
    ListingError.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    entries: list[Entry] = []
    skipped: list[SkippedEntry] = []
    maybe_truncated = False
    try:
        with os.scandir(path.fs_path) as it:
            for index, dir_entry in enumerate(it):
                if cancel is not None and cancel.is_set():
                    raise ScanTimeout()
                if index == limit:
                    maybe_truncated = True
                    break
                try:
                    entries.append(_make_entry(dir_entry, path.href_prefix))
                except OSError as exc:
                    name = _display_name(dir_entry.name)
                    reason = exc.strerror or type(exc).__name__
                    logger.debug("entry_skipped", name=name, error=reason)
                    skipped.append(SkippedEntry(name=name, reason=reason))
    except OSError as exc:
        logger.warning("scan_failed", href_prefix=path.href_prefix, error=type(exc).__name__)
        raise _fatal(exc) from exc

    return ScanOutcome(
        result=ListingResult(entries=entries, maybe_truncated=maybe_truncated),
        skipped=skipped,
    )


async def scan_with_timeout(path: ValidatedPath, limit: int, timeout: float) -> ScanOutcome:
    """Run ``scan`` in a worker thread, giving up after ``timeout`` seconds."""
    cancel = threading.Event()
    try:
        return await asyncio.wait_for(asyncio.to_thread(scan, path, limit, cancel), timeout=timeout)
    except TimeoutError as exc:
        # The worker thread cannot be interrupted; it stops at the next child.
        cancel.set()
        logger.warning("scan_timeout", href_prefix=path.href_prefix, timeout=timeout)
        raise ScanTimeout() from exc
