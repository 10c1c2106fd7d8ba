"""Custom exception hierarchy for transitsync."""

from __future__ import annotations


class TransitSyncError(Exception):
    """Base exception for all transitsync errors."""


class TransitConfigError(TransitSyncError):
    """Invalid or missing configuration."""


class TransitTransportError(TransitSyncError):
    """HTTP-level failure (network, non-200, invalid JSON, unexpected shape)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class LocationPermissionError(TransitSyncError):
    """Location access has not been granted."""


class GeocodingError(TransitSyncError):
    """Reverse geocoding failed.

    Never surfaced to callers of :class:`~transitsync.location.LocationObserver`;
    the fix is emitted with the configured fallback address instead.
    """


class MalformedPersistedDataError(TransitSyncError):
    """A persisted favorites blob could not be decoded.

    Raised by the strict decoder only. The favorites store maps it to an
    empty collection.
    """

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class AutocompleteError(TransitSyncError):
    """The autocomplete provider rejected a query."""
