"""Repository data providers for repo-health."""

from .base import Enrichment, ProviderError, ProviderUnavailable, RepositoryProvider
from .github import (
    GitHubClient,
    GitHubProvider,
    RateLimitInfo,
    describe_http_error,
)

__all__ = [
    "Enrichment",
    "GitHubClient",
    "GitHubProvider",
    "ProviderError",
    "ProviderUnavailable",
    "RateLimitInfo",
    "RepositoryProvider",
    "describe_http_error",
]
