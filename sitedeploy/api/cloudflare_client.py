"""
Cloudflare Pages Deployment Client
Handles all interactions with the Cloudflare v4 API for Pages projects

Every Cloudflare response is wrapped in a {success, errors, result}
envelope. Pages projects are account-scoped and addressed by name.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from sitedeploy.api.base_provider import BaseDeploymentProvider, paginate_lines, VendorModel
from sitedeploy.api.dns_records import cloudflare_records
from sitedeploy.api.exceptions import APIError, AuthenticationError, ConflictError, NotFoundError
from sitedeploy.api.status_mapping import normalize_cloudflare_status
from sitedeploy.models import (
    AutoSetupConfig,
    AutoSetupResult,
    CustomDomainResult,
    DeployOptions,
    DeploymentCredentials,
    DeploymentLogsResult,
    DeploymentPlatform,
    DeploymentProject,
    DeploymentResult,
    DeploymentStatus,
    DeploymentStatusResult,
    DnsRecord,
    GitHubRepository,
    ProjectConfig,
    ProviderCapabilities
)
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import validate_domain
from sitedeploy.utils.validators import ValidationError as InputValidationError

logger = get_logger(__name__)

CLOUDFLARE_AUTHORIZE_URL = "https://dash.cloudflare.com/oauth2/authorize"
CLOUDFLARE_TOKEN_URL = "https://dash.cloudflare.com/oauth2/token"
CLOUDFLARE_OAUTH_SCOPE = "account:read pages:write"


class CloudflareMessage(VendorModel):
    code: Optional[int] = None
    message: str = ""


class CloudflareEnvelope(VendorModel):
    success: bool = False
    errors: List[CloudflareMessage] = []
    result: Any = None


class CloudflareAccount(VendorModel):
    id: str
    name: Optional[str] = None


class CloudflareSourceConfig(VendorModel):
    owner: Optional[str] = None
    repo_name: Optional[str] = None
    production_branch: Optional[str] = None
    deployments_enabled: bool = False


class CloudflareSource(VendorModel):
    type: Optional[str] = None
    config: Optional[CloudflareSourceConfig] = None


class CloudflareProject(VendorModel):
    id: Optional[str] = None
    name: str
    subdomain: Optional[str] = None
    domains: List[str] = []
    source: Optional[CloudflareSource] = None
    production_branch: Optional[str] = None
    created_on: Optional[datetime] = None

    @property
    def production_url(self) -> str:
        # subdomain is normally the full host ("blog.pages.dev")
        host = self.subdomain or self.name
        if not host.endswith(".pages.dev"):
            host = f"{host}.pages.dev"
        return f"https://{host}"


class CloudflareStage(VendorModel):
    name: str = ""
    status: Optional[str] = None
    started_on: Optional[datetime] = None
    ended_on: Optional[datetime] = None


class CloudflareDeployment(VendorModel):
    id: str
    url: Optional[str] = None
    environment: Optional[str] = None
    created_on: Optional[datetime] = None
    latest_stage: Optional[CloudflareStage] = None
    stages: List[CloudflareStage] = []


class CloudflareLogLine(VendorModel):
    ts: Optional[str] = None
    line: str = ""


class CloudflareLogs(VendorModel):
    data: List[CloudflareLogLine] = []


class CloudflareDomain(VendorModel):
    name: str
    status: Optional[str] = None
    verification_data: Optional[Dict[str, Any]] = None


class CloudflareClient(BaseDeploymentProvider):
    """
    Cloudflare Pages deployment client.
    Uses an account-scoped API token; the account id is taken from the
    credentials or detected from the first account the token can see.

    Documentation: https://developers.cloudflare.com/api/resources/pages
    """

    platform = DeploymentPlatform.CLOUDFLARE
    name = "Cloudflare Pages"
    capabilities = ProviderCapabilities(
        supports_preview_deployments=True,
        supports_custom_domains=True,
        supports_environment_variables=True,
        supports_rollback=True,
        supports_build_logs=True,
        supports_webhooks=True,
        supports_oauth=True,
        max_custom_domains=100,
        build_timeout=1200,
    )

    def __init__(self, config=None):
        super().__init__(config)
        self.base_url = self.config.cloudflare_api_url
        logger.debug(f"Cloudflare client initialized - Base URL: {self.base_url}")

    def _extract_error_message(self, error_data: Dict[str, Any]) -> Optional[str]:
        errors = error_data.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return errors[0].get("message")
        return super()._extract_error_message(error_data)

    def _call(self, method: str, endpoint: str, credentials: DeploymentCredentials, **kwargs) -> Any:
        """
        Make a request and unwrap the response envelope.

        Raises:
            APIError: If the envelope reports success=false
        """
        data = self._make_request(method, endpoint, credentials, **kwargs)
        envelope = CloudflareEnvelope.parse(data or {"success": True})
        if not envelope.success:
            message = envelope.errors[0].message if envelope.errors else "Unknown Cloudflare error"
            raise APIError(message, response_data=data)
        return envelope.result

    def _account_id(self, credentials: DeploymentCredentials) -> str:
        if credentials.account_id:
            return credentials.account_id

        result = self._call("GET", "/accounts", credentials, params={"per_page": 1})
        accounts = [CloudflareAccount.parse(item) for item in result or []]
        if not accounts:
            raise AuthenticationError("No Cloudflare account is accessible with this token")

        logger.debug(f"Using Cloudflare account {accounts[0].id}")
        return accounts[0].id

    @staticmethod
    def _projects_path(account_id: str, project_name: Optional[str] = None) -> str:
        path = f"/accounts/{account_id}/pages/projects"
        if project_name:
            path += f"/{quote(project_name, safe='')}"
        return path

    def _to_project(self, project: CloudflareProject) -> DeploymentProject:
        return DeploymentProject(
            id=project.name,
            name=project.name,
            platform=self.platform,
            production_url=project.production_url,
            custom_domains=project.domains,
            created_at=project.created_on,
            updated_at=project.created_on,
        )

    def _lookup_project(
        self, credentials: DeploymentCredentials, account_id: str, name: str
    ) -> Optional[CloudflareProject]:
        try:
            result = self._call("GET", self._projects_path(account_id, name), credentials)
        except NotFoundError:
            return None
        return CloudflareProject.parse(result)

    @staticmethod
    def _build_config(config: ProjectConfig) -> Dict[str, Any]:
        env_vars = {key: {"value": value} for key, value in config.environment_variables.items()}
        return {
            "production_branch": config.production_branch,
            "build_config": {
                "build_command": config.build_command,
                "destination_dir": config.output_directory,
                "root_dir": config.root_directory or "",
            },
            "deployment_configs": {
                "preview": {"env_vars": env_vars},
                "production": {"env_vars": env_vars},
            },
        }

    def _is_linked_to(self, vendor_project: CloudflareProject, repo: GitHubRepository) -> bool:
        source = vendor_project.source.config if vendor_project.source else None
        return bool(
            source
            and (source.owner or "").lower() == repo.owner.lower()
            and (source.repo_name or "").lower() == repo.name.lower()
        )

    def validate_credentials(self, credentials: DeploymentCredentials) -> bool:
        try:
            self._call("GET", "/user/tokens/verify", credentials)
            return True
        except APIError as e:
            logger.warning(f"Cloudflare credential check failed: {e}")
            return False

    def create_project(
        self,
        credentials: DeploymentCredentials,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str
    ) -> DeploymentProject:
        """
        Create a Pages project connected to a GitHub repository.
        An existing project with the same name gets its build config updated.
        """
        account_id = self._account_id(credentials)
        return self._to_project(self._create_or_update(credentials, account_id, config, repo_owner, repo_name))

    def _create_or_update(
        self,
        credentials: DeploymentCredentials,
        account_id: str,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str
    ) -> CloudflareProject:
        build_config = self._build_config(config)
        body = {
            "name": config.name,
            "source": {
                "type": "github",
                "config": {
                    "owner": repo_owner,
                    "repo_name": repo_name,
                    "production_branch": config.production_branch,
                    "pr_comments_enabled": True,
                    "deployments_enabled": True,
                },
            },
            **build_config,
        }

        logger.info(f"Creating Cloudflare Pages project {config.name} for {repo_owner}/{repo_name}")

        try:
            result = self._call("POST", self._projects_path(account_id), credentials, json_data=body)
            return CloudflareProject.parse(result)
        except ConflictError:
            logger.info(f"Cloudflare Pages project {config.name} already exists, updating build config")

        path = self._projects_path(account_id, config.name)
        existing = CloudflareProject.parse(self._call("GET", path, credentials))
        result = self._call("PATCH", path, credentials, json_data=build_config)
        return CloudflareProject.parse(result) if result else existing

    def get_project(self, credentials: DeploymentCredentials, project_id: str) -> Optional[DeploymentProject]:
        project = self._lookup_project(credentials, self._account_id(credentials), project_id)
        return self._to_project(project) if project else None

    def deploy(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        options: Optional[DeployOptions] = None
    ) -> DeploymentResult:
        """
        Start a build of a branch from the connected repository.
        Building the project's production branch publishes to production.
        """
        options = options or DeployOptions()

        try:
            account_id = self._account_id(credentials)
            project = self._lookup_project(credentials, account_id, project_id)
            if project is None:
                return DeploymentResult(success=False, error=f"Cloudflare Pages project {project_id} not found")

            branch = options.branch or project.production_branch or self.config.default_branch
            result = self._call(
                "POST",
                f"{self._projects_path(account_id, project_id)}/deployments",
                credentials,
                files={"branch": (None, branch)}
            )
            deployment = CloudflareDeployment.parse(result)

        except APIError as e:
            logger.error(f"Failed to trigger Cloudflare Pages deployment: {e}")
            return DeploymentResult(success=False, error=e.message)

        is_production = deployment.environment == "production"
        logger.info(f"Cloudflare Pages deployment {deployment.id} created for {project_id}")

        return DeploymentResult(
            success=True,
            deployment_id=deployment.id,
            deployment_url=deployment.url if is_production else project.production_url,
            preview_url=None if is_production else deployment.url,
        )

    def _fetch_deployment(
        self,
        credentials: DeploymentCredentials,
        account_id: str,
        project_id: str,
        deployment_id: str
    ) -> CloudflareDeployment:
        result = self._call(
            "GET",
            f"{self._projects_path(account_id, project_id)}/deployments/{quote(deployment_id, safe='')}",
            credentials
        )
        return CloudflareDeployment.parse(result)

    def get_deployment_status(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str
    ) -> DeploymentStatusResult:
        try:
            deployment = self._fetch_deployment(
                credentials, self._account_id(credentials), project_id, deployment_id
            )
        except APIError as e:
            logger.error(f"Failed to get Cloudflare Pages deployment status: {e}")
            return self._status_error(e)

        stage = deployment.latest_stage or CloudflareStage()
        status = normalize_cloudflare_status(stage.status)
        is_production = deployment.environment == "production"

        return DeploymentStatusResult(
            status=status,
            deployment_url=deployment.url if is_production else None,
            preview_url=None if is_production else deployment.url,
            created_at=deployment.created_on,
            completed_at=stage.ended_on,
            error=f"Build failed at stage: {stage.name}" if status == DeploymentStatus.FAILED else None,
        )

    def get_deployment_logs(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str,
        cursor: Optional[str] = None
    ) -> DeploymentLogsResult:
        try:
            account_id = self._account_id(credentials)
        except APIError as e:
            logger.error(f"Failed to resolve Cloudflare account: {e}")
            return DeploymentLogsResult(logs=[e.message])

        try:
            result = self._call(
                "GET",
                f"{self._projects_path(account_id, project_id)}/deployments/"
                f"{quote(deployment_id, safe='')}/history/logs",
                credentials
            )
            lines = [
                f"[{entry.ts}] {entry.line}" if entry.ts else entry.line
                for entry in CloudflareLogs.parse(result or {}).data
            ]
            return paginate_lines(lines, cursor, self.config.log_page_size)
        except APIError as e:
            logger.warning(f"Cloudflare build log unavailable for {deployment_id}, using stage summary: {e}")

        try:
            deployment = self._fetch_deployment(credentials, account_id, project_id, deployment_id)
        except APIError as e:
            logger.error(f"Failed to get Cloudflare Pages deployment {deployment_id}: {e}")
            return DeploymentLogsResult(logs=[e.message])

        return DeploymentLogsResult(
            logs=[f"{stage.name}: {stage.status or 'unknown'}" for stage in deployment.stages]
        )

    def set_custom_domain(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str
    ) -> CustomDomainResult:
        try:
            domain = validate_domain(domain)
        except InputValidationError as e:
            return CustomDomainResult(success=False, domain=domain, error=str(e))

        try:
            account_id = self._account_id(credentials)
            result = self._call(
                "POST",
                f"{self._projects_path(account_id, project_id)}/domains",
                credentials,
                json_data={"name": domain}
            )
            added = CloudflareDomain.parse(result)
        except APIError as e:
            logger.error(f"Failed to add domain {domain} to Cloudflare Pages project: {e}")
            return CustomDomainResult(success=False, domain=domain, error=e.message)

        verification = (added.verification_data or {}).get("status")

        return CustomDomainResult(
            success=True,
            domain=added.name,
            configured=True,
            verified=added.status == "active" or verification == "active",
            dns_records=cloudflare_records(domain, project_id),
        )

    def remove_custom_domain(self, credentials: DeploymentCredentials, project_id: str, domain: str) -> bool:
        try:
            account_id = self._account_id(credentials)
            self._call(
                "DELETE",
                f"{self._projects_path(account_id, project_id)}/domains/{quote(domain, safe='')}",
                credentials
            )
            return True
        except APIError as e:
            logger.error(f"Failed to remove domain {domain} from Cloudflare Pages project: {e}")
            return False

    def get_dns_instructions(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str
    ) -> List[DnsRecord]:
        return cloudflare_records(validate_domain(domain), project_id)

    def rollback(self, credentials: DeploymentCredentials, project_id: str, deployment_id: str) -> DeploymentResult:
        try:
            account_id = self._account_id(credentials)
            result = self._call(
                "POST",
                f"{self._projects_path(account_id, project_id)}/deployments/"
                f"{quote(deployment_id, safe='')}/rollback",
                credentials
            )
            deployment = CloudflareDeployment.parse(result)
        except APIError as e:
            logger.error(f"Failed to roll back Cloudflare Pages deployment {deployment_id}: {e}")
            return DeploymentResult(success=False, error=e.message)

        return DeploymentResult(success=True, deployment_id=deployment.id, deployment_url=deployment.url)

    def delete_project(self, credentials: DeploymentCredentials, project_id: str) -> bool:
        try:
            self._call("DELETE", self._projects_path(self._account_id(credentials), project_id), credentials)
            logger.info(f"Cloudflare Pages project {project_id} deleted")
            return True
        except APIError as e:
            logger.error(f"Failed to delete Cloudflare Pages project: {e}")
            return False

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        self._require_oauth_app(self.config.cloudflare_client_id)
        query = urlencode({
            "client_id": self.config.cloudflare_client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "state": state,
            "scope": CLOUDFLARE_OAUTH_SCOPE,
        })
        return f"{CLOUDFLARE_AUTHORIZE_URL}?{query}"

    def exchange_code_for_token(self, code: str, redirect_uri: str) -> str:
        self._require_oauth_app(
            self.config.cloudflare_client_id, self.config.cloudflare_client_secret, need_secret=True
        )
        return self._exchange_oauth_code(
            CLOUDFLARE_TOKEN_URL,
            {
                "grant_type": "authorization_code",
                "client_id": self.config.cloudflare_client_id,
                "client_secret": self.config.cloudflare_client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            }
        )

    def auto_setup_project(
        self,
        credentials: DeploymentCredentials,
        github_repo: GitHubRepository,
        config: AutoSetupConfig
    ) -> AutoSetupResult:
        account_id = self._account_id(credentials)
        name, project = self._find_setup_slot(
            github_repo, lambda candidate: self._lookup_project(credentials, account_id, candidate)
        )

        if project is None:
            project_config = self._hugo_project_config(name, config, github_repo.default_branch)
            project = self._create_or_update(
                credentials, account_id, project_config, github_repo.owner, github_repo.name
            )

        source = project.source.config if project.source else None
        return AutoSetupResult(
            project=self._to_project(project),
            deployment_url=project.production_url,
            webhook_configured=bool(source and source.deployments_enabled),
        )
