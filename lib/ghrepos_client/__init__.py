from .client import GitHubClient, build_client
from .config_types import ClientConfig
from .errors import DeserializationError, GitHubClientError, NetworkError, ServerError
from .models import Failure, Repository, RepositoryListResult, Success
from .transport import CACHED, NON_CACHED, ClientFactory

__all__ = [
    "GitHubClient",
    "build_client",
    "ClientConfig",
    "ClientFactory",
    "CACHED",
    "NON_CACHED",
    "GitHubClientError",
    "NetworkError",
    "ServerError",
    "DeserializationError",
    "Repository",
    "RepositoryListResult",
    "Success",
    "Failure",
]
