from __future__ import annotations


class GitHubClientError(Exception):
    """Base client error."""


class NetworkError(GitHubClientError):
    """Transport/network layer error."""


class ServerError(GitHubClientError):
    def __init__(self, status_code: int, message: str, details: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class DeserializationError(GitHubClientError):
    """Response body could not be mapped to the expected shape."""
