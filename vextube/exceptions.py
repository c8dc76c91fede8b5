"""
Exceptions for vextube.

Remote store errors carry the error code reported by the backend so callers
can tell a duplicate-key violation apart from a hard failure.
"""

# Codes used by the hosted Postgres/PostgREST backend; the SQLite backend
# reports the same codes so callers never depend on the backend in use.
CONFLICT_CODE = "23505"
NOT_FOUND_CODE = "PGRST116"


class VextubeError(Exception):
    """Base exception for vextube."""

    def __init__(self, message: str, code: str = "VEXTUBE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {"error": True, "code": self.code, "message": self.message}


class ConfigurationError(VextubeError):
    """A required credential, identity or setting is missing."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")


class FetchError(VextubeError):
    """A video list could not be fetched (bad URL, quota, not found)."""

    def __init__(self, message: str):
        super().__init__(message, code="FETCH_ERROR")


class VideoNotFoundError(FetchError):
    """The requested video does not exist or is not visible."""


class RemoteError(VextubeError):
    """A remote store operation failed."""

    def __init__(self, message: str, code: str = "REMOTE_ERROR"):
        super().__init__(message, code=code)


class ConflictError(RemoteError):
    """A write violated a declared unique constraint."""

    def __init__(self, message: str):
        super().__init__(message, code=CONFLICT_CODE)


class NotFoundError(RemoteError):
    """A single-row select matched nothing."""

    def __init__(self, message: str):
        super().__init__(message, code=NOT_FOUND_CODE)
