"""Error taxonomy surfaced by the repository client."""

from __future__ import annotations


class RepositoryError(RuntimeError):
    """Base class for failures talking to the repository."""

    def __init__(self, message: str, *, url: str | None = None, identifier: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.identifier = identifier

    def __str__(self) -> str:
        parts = [self.message]
        if self.identifier:
            parts.append(f"identifier={self.identifier}")
        if self.url:
            parts.append(f"url={self.url}")
        return " | ".join(parts)


class TransportError(RepositoryError):
    """Raised on network, DNS, connection or timeout failures."""


class NotFoundError(RepositoryError):
    """Raised when the repository reports the resource as absent."""


class DecodeError(RepositoryError):
    """Raised when a response body does not have the expected JSON or CSV shape."""


class RemoteError(RepositoryError):
    """Raised for any other non-success HTTP status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        url: str | None = None,
        identifier: str | None = None,
    ) -> None:
        super().__init__(message, url=url, identifier=identifier)
        self.status_code = status_code
