"""
Deployment Provider Factory
Creates and caches deployment provider instances per platform
"""

import threading
from typing import Dict, List, Optional, Union

from sitedeploy.api.base_provider import BaseDeploymentProvider
from sitedeploy.api.cloudflare_client import CloudflareClient
from sitedeploy.api.exceptions import UnsupportedPlatformError
from sitedeploy.api.github_pages_client import GitHubPagesClient
from sitedeploy.api.netlify_client import NetlifyClient
from sitedeploy.api.vercel_client import VercelClient
from sitedeploy.models import (
    DeploymentCredentials,
    DeploymentPlatform,
    PlatformInfo,
    ProviderCapabilities
)
from sitedeploy.utils.config import Settings
from sitedeploy.utils.logger import get_logger

logger = get_logger(__name__)

PlatformLike = Union[DeploymentPlatform, str]

PLATFORM_INFO: Dict[DeploymentPlatform, PlatformInfo] = {
    DeploymentPlatform.GITHUB_PAGES: PlatformInfo(
        platform=DeploymentPlatform.GITHUB_PAGES,
        name="GitHub Pages",
        description="Free hosting directly from your GitHub repository",
        icon="github",
        docs_url="https://docs.github.com/pages",
    ),
    DeploymentPlatform.VERCEL: PlatformInfo(
        platform=DeploymentPlatform.VERCEL,
        name="Vercel",
        description="Fast global edge network with automatic SSL",
        icon="vercel",
        docs_url="https://vercel.com/docs",
    ),
    DeploymentPlatform.NETLIFY: PlatformInfo(
        platform=DeploymentPlatform.NETLIFY,
        name="Netlify",
        description="All-in-one platform for web projects",
        icon="netlify",
        docs_url="https://docs.netlify.com",
    ),
    DeploymentPlatform.CLOUDFLARE: PlatformInfo(
        platform=DeploymentPlatform.CLOUDFLARE,
        name="Cloudflare Pages",
        description="JAMstack platform with global CDN",
        icon="cloudflare",
        docs_url="https://developers.cloudflare.com/pages",
    ),
}


def to_platform(platform: PlatformLike) -> DeploymentPlatform:
    """
    Coerce a platform tag to DeploymentPlatform.

    Raises:
        UnsupportedPlatformError: If the tag is not a known platform
    """
    if isinstance(platform, DeploymentPlatform):
        return platform
    try:
        return DeploymentPlatform(str(platform).strip().lower())
    except ValueError:
        valid = ", ".join(p.value for p in DeploymentPlatform)
        raise UnsupportedPlatformError(
            f"Unknown deployment platform: {platform}. Valid options are: {valid}"
        ) from None


def create_provider(platform: PlatformLike, config: Optional[Settings] = None) -> BaseDeploymentProvider:
    """
    Factory function to create a provider instance.

    Args:
        platform: Platform tag ("github-pages", "vercel", "netlify", "cloudflare")
        config: Optional Settings instance. Uses default if None.

    Returns:
        New provider instance

    Raises:
        UnsupportedPlatformError: If platform is invalid

    Example:
        provider = create_provider("vercel")
    """
    platform = to_platform(platform)
    logger.info(f"Creating deployment provider: {platform.value}")

    if platform == DeploymentPlatform.GITHUB_PAGES:
        return GitHubPagesClient(config)

    elif platform == DeploymentPlatform.VERCEL:
        return VercelClient(config)

    elif platform == DeploymentPlatform.NETLIFY:
        return NetlifyClient(config)

    elif platform == DeploymentPlatform.CLOUDFLARE:
        return CloudflareClient(config)

    raise UnsupportedPlatformError(f"No provider registered for {platform.value}")


class ProviderRegistry:
    """
    Lazily constructed, memoised provider instances.
    Each adapter is built on first request and reused afterwards.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config
        self._providers: Dict[DeploymentPlatform, BaseDeploymentProvider] = {}
        self._lock = threading.Lock()

    def get_provider(self, platform: PlatformLike) -> BaseDeploymentProvider:
        """
        Get the provider for a platform, creating it on first use.

        Raises:
            UnsupportedPlatformError: If platform is invalid
        """
        platform = to_platform(platform)

        with self._lock:
            provider = self._providers.get(platform)
            if provider is None:
                provider = create_provider(platform, self.config)
                self._providers[platform] = provider
            return provider

    def get_all_providers(self) -> List[BaseDeploymentProvider]:
        return [self.get_provider(platform) for platform in DeploymentPlatform]

    def get_provider_capabilities(self, platform: PlatformLike) -> ProviderCapabilities:
        return self.get_provider(platform).capabilities

    def validate_platform_credentials(self, credentials: DeploymentCredentials) -> bool:
        """Validate credentials against the platform they are tagged with"""
        return self.get_provider(credentials.platform).validate_credentials(credentials)

    @staticmethod
    def get_platform_info(platform: PlatformLike) -> PlatformInfo:
        """Display metadata for a platform. Does not construct the adapter."""
        return PLATFORM_INFO[to_platform(platform)]

    @staticmethod
    def get_all_platform_info() -> List[PlatformInfo]:
        return [PLATFORM_INFO[platform] for platform in DeploymentPlatform]

    def clear(self):
        """Drop cached providers (useful for testing)"""
        with self._lock:
            self._providers.clear()


# Default registry
_registry = ProviderRegistry()


def get_registry() -> ProviderRegistry:
    return _registry


def get_provider(platform: PlatformLike) -> BaseDeploymentProvider:
    """Convenience function: provider from the default registry"""
    return _registry.get_provider(platform)


def get_all_providers() -> List[BaseDeploymentProvider]:
    return _registry.get_all_providers()


def get_provider_capabilities(platform: PlatformLike) -> ProviderCapabilities:
    return _registry.get_provider_capabilities(platform)


def validate_platform_credentials(credentials: DeploymentCredentials) -> bool:
    return _registry.validate_platform_credentials(credentials)


def get_platform_info(platform: PlatformLike) -> PlatformInfo:
    return ProviderRegistry.get_platform_info(platform)


def get_all_platform_info() -> List[PlatformInfo]:
    return ProviderRegistry.get_all_platform_info()
