from __future__ import annotations

"""Errors raised by the search gateway and provider."""


class SearchError(RuntimeError):
    """Base class for search failures that abort the requested operation."""
    pass


class InvalidArgumentError(SearchError, ValueError):
    """Raised when the caller passes arguments that do not fit the configuration."""
    pass


class NotFoundError(SearchError):
    """Raised when a document or index does not resolve on the backend."""
    pass


class RemoteUnavailableError(SearchError):
    """Raised when the backend cannot be reached or times out."""
    pass


class SearchBackendError(SearchError):
    """Raised when the backend answers with an unexpected status or payload."""
    pass
