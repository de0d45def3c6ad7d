"""Error types raised by the Overseerr core and HTTP client."""

from __future__ import annotations


class OverseerrError(Exception):
    """Base class for errors raised by this package."""


class MediaValidationError(OverseerrError, ValueError):
    """A required argument is missing or malformed; never retried."""


class EmptyCandidateSetError(OverseerrError, ValueError):
    """Match selection was attempted without any search candidates."""


class UpstreamError(OverseerrError):
    """The Overseerr API returned an error or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        timeout: bool = False,
        malformed: bool = False,
    ) -> None:
        self.message = message
        self.status = status
        self.timeout = timeout
        self.malformed = malformed
        prefix = f"Overseerr API error ({status})" if status else "Overseerr API error"
        super().__init__(f"{prefix}: {message}")

    @property
    def retryable(self) -> bool:
        """Whether the failure is transient (timeout, network, or 5xx)."""

        if self.malformed:
            return False
        if self.status is None:
            return True
        return self.status >= 500

    @property
    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500


__all__ = [
    "EmptyCandidateSetError",
    "MediaValidationError",
    "OverseerrError",
    "UpstreamError",
]
