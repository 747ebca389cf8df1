"""Error kinds raised by the drive mirror and foods services.

Raised exceptions map directly to HTTP status codes so FastAPI can
return them as-is.

RemoteFetchError      (502)  – a Drive list/export call failed.
TypeMismatchError     (415)  – export requested on a non-document node.
NotFoundError         (404)  – folder/file id unknown to cache and Drive.
CacheUnavailableError (503)  – search before any successful populate.
InvalidQueryError     (400)  – unusable foods query parameters.

ConfigurationError is *not* an HTTP error: it is fatal at startup.
"""

from fastapi import HTTPException


class ConfigurationError(RuntimeError):
    """Missing or unusable configuration (root folder id, credentials)."""


class RemoteFetchError(HTTPException):
    """502 – the remote tree client failed; caches keep their prior state."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=502, detail=detail)


class TypeMismatchError(HTTPException):
    """415 – the node is not an exportable Google Docs document."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=415, detail=detail)


class NotFoundError(HTTPException):
    """404 – id absent from both the cache and the remote tree."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=404, detail=detail)


class CacheUnavailableError(HTTPException):
    def __init__(
        self, detail: str = "Drive structure not available. Please try again later."
    ) -> None:
        super().__init__(status_code=503, detail=detail)


class InvalidQueryError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, detail=detail)
