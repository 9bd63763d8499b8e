"""Igor exception classes."""

from __future__ import annotations


class IgorError(RuntimeError):
    """Base exception for Igor errors."""


class UserError(IgorError):
    """Errors that should be shown to user without traceback."""

    def __init__(self, message: str, rc: int = 2):
        super().__init__(message)
        self.rc = rc


class CommandFailureError(IgorError):
    """Command failed - error message already printed, just need to exit.

    This exception is for cases where a command has already printed
    its error message and just needs to signal failure without
    additional output from main().
    """

    def __init__(self, rc: int = 1):
        super().__init__("")
        self.rc = rc


class GitLabError(IgorError):
    """Base class for failures talking to the GitLab API."""


class TransportError(GitLabError):
    """Network-level failure (connection refused, DNS, timeout)."""


class DeserializeError(GitLabError):
    """Response body was not the JSON shape we expected."""


class HttpError(GitLabError):
    """GitLab answered with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int, endpoint: str):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class UnauthorizedError(HttpError):
    """401/403: token missing, expired or lacking the read_api scope."""


class NotFoundError(HttpError):
    """404: the requested runner (or its managers) does not exist."""


class ClientHttpError(HttpError):
    """Any other 4xx response."""


class ServerError(HttpError):
    """5xx response from GitLab."""


class AggregationError(GitLabError):
    """A runner list page could not be fetched, so the whole pass failed."""

    def __init__(self, page: int, cause: GitLabError):
        super().__init__(f"Failed to fetch runner list page {page}: {cause}")
        self.page = page
        self.cause = cause
