"""
API Layer - Hosting Platform Implementations
Supports multiple hosting platforms with a unified interface
"""

# Base Provider
from sitedeploy.api.base_provider import BaseDeploymentProvider

# Provider Implementations
from sitedeploy.api.github_pages_client import GitHubPagesClient
from sitedeploy.api.vercel_client import VercelClient
from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.cloudflare_client import CloudflareClient

# Provider Factory / Registry
from sitedeploy.api.provider_factory import (
    ProviderRegistry,
    create_provider,
    get_provider,
    get_all_providers,
    get_provider_capabilities,
    validate_platform_credentials,
    get_platform_info,
    get_all_platform_info
)

# Exceptions (shared across providers)
from sitedeploy.api.exceptions import (
    APIError,
    AuthenticationError,
    NotFoundError,
    ConflictError,
    RateLimitError,
    NetworkError,
    ValidationError,
    InvalidProjectIdError,
    ServerError,
    OAuthNotSupportedError,
    OAuthConfigurationError,
    UnsupportedPlatformError
)

__all__ = [
    # Base
    "BaseDeploymentProvider",

    # Providers
    "GitHubPagesClient",
    "VercelClient",
    "NetlifyClient",
    "CloudflareClient",

    # Factory / Registry
    "ProviderRegistry",
    "create_provider",
    "get_provider",
    "get_all_providers",
    "get_provider_capabilities",
    "validate_platform_credentials",
    "get_platform_info",
    "get_all_platform_info",

    # Exceptions
    "APIError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "NetworkError",
    "ValidationError",
    "InvalidProjectIdError",
    "ServerError",
    "OAuthNotSupportedError",
    "OAuthConfigurationError",
    "UnsupportedPlatformError"
]
