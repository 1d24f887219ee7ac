"""
Error taxonomy shared by the movies service and the client library.

Every domain failure carries the HTTP status it maps to and whether a
caller may safely retry it.  The API layer turns these into JSON error
payloads; the client library turns those payloads back into the same
classes, so both sides of the wire speak one vocabulary.
"""

from __future__ import annotations

from typing import Dict, Type


class CinefavError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    error_type: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(CinefavError):
    """Malformed caller arguments (empty title, non-positive page, ...)."""

    status_code = 400
    error_type = "invalid_input"


class NotFound(CinefavError):
    status_code = 404
    error_type = "not_found"


class Conflict(CinefavError):
    """An item with the same identity is already stored."""

    status_code = 409
    error_type = "conflict"


class PersistenceError(CinefavError):
    """The favorites file could not be read or written.

    Never retried automatically: after a failed write the in-memory
    snapshot may already differ from what is on disk.
    """

    status_code = 500
    error_type = "persistence_error"


class UpstreamUnavailable(CinefavError):
    """The external catalog provider failed (network, timeout, bad payload)."""

    status_code = 502
    error_type = "upstream_unavailable"
    retryable = True


class ConfigurationError(CinefavError):
    status_code = 500
    error_type = "configuration_error"


ERRORS_BY_TYPE: Dict[str, Type[CinefavError]] = {
    cls.error_type: cls
    for cls in (
        InvalidInput,
        NotFound,
        Conflict,
        PersistenceError,
        UpstreamUnavailable,
        ConfigurationError,
    )
}
