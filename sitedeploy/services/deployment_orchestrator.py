"""
Deployment Orchestrator
Single entry point used by the rest of the application to manage hosting
projects, deployments, build logs and custom domains on any supported
platform.
"""

from typing import List, Optional

from sitedeploy.api.base_provider import BaseDeploymentProvider
from sitedeploy.api.exceptions import APIError, UnsupportedPlatformError
from sitedeploy.api.provider_factory import PlatformLike, ProviderRegistry, to_platform
from sitedeploy.models import (
    AutoSetupConfig,
    AutoSetupResult,
    CustomDomainResult,
    DeployOptions,
    DeploymentCredentials,
    DeploymentLogsResult,
    DeploymentProject,
    DeploymentResult,
    DeploymentStatus,
    DeploymentStatusResult,
    DnsRecord,
    GitHubRepository,
    PlatformInfo,
    ProjectConfig,
    ProviderCapabilities
)
from sitedeploy.utils.config import get_settings, Settings
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import ValidationError as InputValidationError

logger = get_logger(__name__)


class OrchestratorError(Exception):
    """Raised when an operation without an error slot in its result fails"""
    pass


class DeploymentOrchestrator:
    """
    Provider-agnostic deployment façade.

    Every method looks up the adapter for the credentials' platform and
    makes exactly one adapter call: nothing is cached and nothing is
    retried here.

    Result-typed operations (deploy, status, logs, domains, rollback,
    delete) never raise for platform errors; the failure is carried in the
    result. Operations whose result has no room for an error
    (create_project, get_project, get_dns_instructions, auto_setup_project,
    OAuth helpers) raise OrchestratorError chained to the platform error.
    """

    def __init__(self, config: Optional[Settings] = None, registry: Optional[ProviderRegistry] = None):
        """
        Initialize the orchestrator.

        Args:
            config: Optional Settings object. Defaults to get_settings().
            registry: Optional provider registry. A private one is created
                      from config if None.
        """
        self.config = config or get_settings()
        self.registry = registry or ProviderRegistry(self.config)

    def _provider(self, platform: PlatformLike) -> BaseDeploymentProvider:
        try:
            return self.registry.get_provider(platform)
        except UnsupportedPlatformError as exc:
            raise OrchestratorError(str(exc)) from exc

    def _provider_for(self, credentials: DeploymentCredentials, platform: Optional[PlatformLike]):
        """
        Adapter for the credentials' platform.

        Raises:
            OrchestratorError: If an explicit platform disagrees with the credentials
        """
        if platform is not None:
            try:
                requested = to_platform(platform)
            except UnsupportedPlatformError as exc:
                raise OrchestratorError(str(exc)) from exc
            if requested != credentials.platform:
                raise OrchestratorError(
                    f"Credentials are for {credentials.platform.value}, not {requested.value}"
                )
        return self._provider(credentials.platform)

    # ------------------------------------------------------------------
    # Platform metadata
    # ------------------------------------------------------------------

    def list_platforms(self) -> List[PlatformInfo]:
        return self.registry.get_all_platform_info()

    def get_capabilities(self, platform: PlatformLike) -> ProviderCapabilities:
        return self._provider(platform).capabilities

    # ------------------------------------------------------------------
    # Credentials & OAuth
    # ------------------------------------------------------------------

    def validate_credentials(self, credentials: DeploymentCredentials) -> bool:
        provider = self._provider_for(credentials, None)
        valid = provider.validate_credentials(credentials)
        logger.info(f"{provider.name} credentials {'valid' if valid else 'rejected'}")
        return valid

    def get_authorization_url(self, platform: PlatformLike, redirect_uri: str, state: str) -> Optional[str]:
        """
        OAuth authorization URL for a platform.

        Returns:
            URL string, or None for platforms without an OAuth flow

        Raises:
            OrchestratorError: If the platform's OAuth app is not configured
        """
        provider = self._provider(platform)
        if not provider.capabilities.supports_oauth:
            return None

        try:
            return provider.get_authorization_url(redirect_uri, state)
        except APIError as exc:
            logger.error(f"Cannot build {provider.name} authorization URL: {exc}")
            raise OrchestratorError(str(exc)) from exc

    def exchange_code_for_token(self, platform: PlatformLike, code: str, redirect_uri: str) -> str:
        """
        Exchange an OAuth code for an access token.

        Raises:
            OrchestratorError: If the platform has no OAuth flow or the exchange fails
        """
        provider = self._provider(platform)
        try:
            token = provider.exchange_code_for_token(code, redirect_uri)
        except APIError as exc:
            logger.error(f"{provider.name} token exchange failed: {exc}")
            raise OrchestratorError(str(exc)) from exc

        logger.info(f"{provider.name} OAuth code exchanged")
        return token

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(
        self,
        credentials: DeploymentCredentials,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str,
        platform: Optional[PlatformLike] = None
    ) -> DeploymentProject:
        """
        Create (or link) a hosting project for a GitHub repository.

        Raises:
            OrchestratorError: If the platform call fails
        """
        provider = self._provider_for(credentials, platform)
        try:
            project = provider.create_project(credentials, config, repo_owner, repo_name)
        except APIError as exc:
            logger.error(f"Failed to create {provider.name} project for {repo_owner}/{repo_name}: {exc}")
            raise OrchestratorError(str(exc)) from exc

        logger.info(f"{provider.name} project ready: {project.id} -> {project.production_url}")
        return project

    def get_project(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        platform: Optional[PlatformLike] = None
    ) -> Optional[DeploymentProject]:
        """
        Returns:
            The project, or None if it does not exist

        Raises:
            OrchestratorError: For failures other than "not found"
        """
        provider = self._provider_for(credentials, platform)
        try:
            return provider.get_project(credentials, project_id)
        except APIError as exc:
            logger.error(f"Failed to get {provider.name} project {project_id}: {exc}")
            raise OrchestratorError(str(exc)) from exc

    def delete_project(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        platform: Optional[PlatformLike] = None
    ) -> bool:
        provider = self._provider_for(credentials, platform)
        try:
            return provider.delete_project(credentials, project_id)
        except APIError as exc:
            logger.error(f"Failed to delete {provider.name} project {project_id}: {exc}")
            return False

    def auto_setup_project(
        self,
        credentials: DeploymentCredentials,
        github_repo: GitHubRepository,
        config: Optional[AutoSetupConfig] = None,
        platform: Optional[PlatformLike] = None
    ) -> AutoSetupResult:
        """
        One-click setup of a repository on the credentials' platform.

        Raises:
            OrchestratorError: If setup fails or no project name is free
        """
        provider = self._provider_for(credentials, platform)
        logger.info(f"Auto-setup of {github_repo.full_name} on {provider.name}")

        try:
            result = provider.auto_setup_project(credentials, github_repo, config or AutoSetupConfig())
        except (APIError, InputValidationError) as exc:
            logger.error(f"Auto-setup of {github_repo.full_name} on {provider.name} failed: {exc}")
            raise OrchestratorError(str(exc)) from exc

        logger.info(f"Auto-setup complete: {result.deployment_url}")
        return result

    # ------------------------------------------------------------------
    # Deployments
    # ------------------------------------------------------------------

    def deploy(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        options: Optional[DeployOptions] = None,
        platform: Optional[PlatformLike] = None
    ) -> DeploymentResult:
        provider = self._provider_for(credentials, platform)
        try:
            result = provider.deploy(credentials, project_id, options)
        except APIError as exc:
            logger.error(f"{provider.name} deploy of {project_id} failed: {exc}")
            return DeploymentResult(success=False, error=exc.message)

        if result.success:
            logger.info(f"{provider.name} deployment {result.deployment_id} triggered for {project_id}")
        else:
            logger.warning(f"{provider.name} deploy of {project_id} failed: {result.error}")
        return result

    def get_deployment_status(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str,
        platform: Optional[PlatformLike] = None
    ) -> DeploymentStatusResult:
        provider = self._provider_for(credentials, platform)
        try:
            return provider.get_deployment_status(credentials, project_id, deployment_id)
        except APIError as exc:
            logger.error(f"Failed to get {provider.name} deployment {deployment_id}: {exc}")
            return DeploymentStatusResult(status=DeploymentStatus.FAILED, error=exc.message)

    def get_deployment_logs(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str,
        cursor: Optional[str] = None,
        platform: Optional[PlatformLike] = None
    ) -> DeploymentLogsResult:
        provider = self._provider_for(credentials, platform)
        try:
            return provider.get_deployment_logs(credentials, project_id, deployment_id, cursor)
        except APIError as exc:
            logger.error(f"Failed to get {provider.name} logs for {deployment_id}: {exc}")
            return DeploymentLogsResult(logs=[exc.message])

    def rollback(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str,
        platform: Optional[PlatformLike] = None
    ) -> DeploymentResult:
        provider = self._provider_for(credentials, platform)
        try:
            result = provider.rollback(credentials, project_id, deployment_id)
        except APIError as exc:
            logger.error(f"{provider.name} rollback to {deployment_id} failed: {exc}")
            return DeploymentResult(success=False, error=exc.message)

        if result.success:
            logger.info(f"{provider.name} rolled back {project_id} to {deployment_id}")
        return result

    # ------------------------------------------------------------------
    # Custom domains
    # ------------------------------------------------------------------

    def set_custom_domain(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str,
        platform: Optional[PlatformLike] = None
    ) -> CustomDomainResult:
        provider = self._provider_for(credentials, platform)
        try:
            result = provider.set_custom_domain(credentials, project_id, domain)
        except APIError as exc:
            logger.error(f"Failed to set {domain} on {provider.name} project {project_id}: {exc}")
            return CustomDomainResult(success=False, domain=domain, error=exc.message)

        if result.success:
            logger.info(f"Custom domain {result.domain} added to {provider.name} project {project_id}")
        return result

    def remove_custom_domain(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str,
        platform: Optional[PlatformLike] = None
    ) -> bool:
        provider = self._provider_for(credentials, platform)
        try:
            return provider.remove_custom_domain(credentials, project_id, domain)
        except APIError as exc:
            logger.error(f"Failed to remove {domain} from {provider.name} project {project_id}: {exc}")
            return False

    def get_dns_instructions(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str,
        platform: Optional[PlatformLike] = None
    ) -> List[DnsRecord]:
        """
        DNS records the user must create for a custom domain.

        Raises:
            OrchestratorError: If the domain is invalid or the project cannot be read
        """
        provider = self._provider_for(credentials, platform)
        try:
            return provider.get_dns_instructions(credentials, project_id, domain)
        except (APIError, InputValidationError) as exc:
            logger.error(f"Cannot build DNS instructions for {domain}: {exc}")
            raise OrchestratorError(str(exc)) from exc
