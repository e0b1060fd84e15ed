"""Exception hierarchy for the GeoNames cache."""

from typing import Optional


class GeoNamesCacheError(Exception):
    """Base class for all errors raised by geonames_cache."""


class IdentityConflictError(GeoNamesCacheError, ValueError):
    """An identifying field was changed, or a second instance claimed it."""


class StorageError(GeoNamesCacheError):
    """The storage backend reported an error while executing a statement."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class GeoNamesApiError(GeoNamesCacheError):
    """The GeoNames web service failed or returned an error payload."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
