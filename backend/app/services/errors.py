"""Error taxonomy for the directory listing engine.

Every error carries the HTTP status it maps to and a fixed public message.
Messages never include filesystem paths; callers log details separately.
"""

from fastapi import status


class ListingError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class InvalidPath(ListingError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "The requested path is malformed"


class NotFound(ListingError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "The resource you are requesting does not exist"


class PathOutOfRoot(ListingError):
    """Resolves outside the document root. Answered exactly like NotFound."""

    status_code = NotFound.status_code
    message = NotFound.message


class NotADirectory(ListingError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "The resource you are requesting is not a directory"


class PermissionDenied(ListingError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "You are not allowed to list this directory"


class ListingIOError(ListingError):
    pass


class ScanTimeout(ListingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Listing the directory took too long"
