"""
Netlify Deployment Client
Handles all interactions with the Netlify REST API
"""

from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import quote, urlencode

from sitedeploy.api.base_provider import BaseDeploymentProvider, paginate_lines, VendorModel
from sitedeploy.api.dns_records import netlify_records
from sitedeploy.api.exceptions import APIError, ConflictError, NotFoundError, ValidationError
from sitedeploy.api.status_mapping import normalize_netlify_state
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

NETLIFY_AUTHORIZE_URL = "https://app.netlify.com/authorize"
NETLIFY_TOKEN_URL = "https://api.netlify.com/oauth/token"


class NetlifyUser(VendorModel):
    id: Optional[str] = None
    email: Optional[str] = None


class NetlifyBuildSettings(VendorModel):
    repo_url: Optional[str] = None
    repo_path: Optional[str] = None
    repo_branch: Optional[str] = None
    cmd: Optional[str] = None
    dir: Optional[str] = None
    env: Optional[Dict[str, str]] = None


class NetlifySite(VendorModel):
    id: str
    name: str
    url: Optional[str] = None
    ssl_url: Optional[str] = None
    custom_domain: Optional[str] = None
    domain_aliases: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    build_settings: Optional[NetlifyBuildSettings] = None

    @property
    def live_url(self) -> str:
        return self.ssl_url or self.url or f"https://{self.name}.netlify.app"


class NetlifyBuild(VendorModel):
    id: Optional[str] = None
    deploy_id: Optional[str] = None


class NetlifyDeploy(VendorModel):
    id: str
    state: Optional[str] = None
    url: Optional[str] = None
    ssl_url: Optional[str] = None
    deploy_url: Optional[str] = None
    deploy_ssl_url: Optional[str] = None
    created_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    error_message: Optional[str] = None


class NetlifyClient(BaseDeploymentProvider):
    """
    Netlify deployment client.

    Documentation: https://open-api.netlify.com
    """

    platform = DeploymentPlatform.NETLIFY
    name = "Netlify"
    capabilities = ProviderCapabilities(
        supports_preview_deployments=True,
        supports_custom_domains=True,
        supports_environment_variables=True,
        supports_rollback=True,
        supports_build_logs=True,
        supports_webhooks=True,
        supports_oauth=True,
        max_custom_domains=100,
        build_timeout=1800,
    )

    def __init__(self, config=None):
        super().__init__(config)
        self.base_url = self.config.netlify_api_url
        logger.debug(f"Netlify client initialized - Base URL: {self.base_url}")

    def _to_project(self, site: NetlifySite) -> DeploymentProject:
        custom_domains = ([site.custom_domain] if site.custom_domain else []) + site.domain_aliases

        return DeploymentProject(
            id=site.id,
            name=site.name,
            platform=self.platform,
            production_url=site.live_url,
            custom_domains=custom_domains,
            created_at=site.created_at,
            updated_at=site.updated_at,
        )

    def _fetch_site(self, credentials: DeploymentCredentials, site_id: str) -> NetlifySite:
        data = self._make_request("GET", f"/sites/{quote(site_id, safe='')}", credentials)
        return NetlifySite.parse(data)

    def _find_site_by_name(self, credentials: DeploymentCredentials, name: str) -> Optional[NetlifySite]:
        """The sites listing filters by substring, so the exact name is matched here"""
        data = self._make_request(
            "GET", "/sites", credentials, params={"name": name, "filter": "all"}
        )
        for item in data if isinstance(data, list) else []:
            site = NetlifySite.parse(item)
            if site.name == name:
                return site
        return None

    @staticmethod
    def _build_settings(config: ProjectConfig) -> Dict:
        settings = {"cmd": config.build_command, "dir": config.output_directory}
        if config.environment_variables:
            settings["env"] = config.environment_variables
        if config.root_directory:
            settings["base"] = config.root_directory
        return settings

    def _is_linked_to(self, vendor_project: NetlifySite, repo: GitHubRepository) -> bool:
        build = vendor_project.build_settings
        if build is None:
            return False
        full_name = repo.full_name.lower()
        return (
            (build.repo_path or "").lower() == full_name
            or (build.repo_url or "").lower().rstrip("/").endswith(f"/{full_name}")
        )

    def validate_credentials(self, credentials: DeploymentCredentials) -> bool:
        try:
            data = self._make_request("GET", "/user", credentials)
            return NetlifyUser.parse(data).id is not None
        except APIError as e:
            logger.warning(f"Netlify credential check failed: {e}")
            return False

    def create_project(
        self,
        credentials: DeploymentCredentials,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str
    ) -> DeploymentProject:
        """
        Create a Netlify site linked to a GitHub repository.
        Netlify answers a taken site name with 422, in which case the
        existing site's build settings are updated instead.
        """
        return self._to_project(self._create_or_update(credentials, config, repo_owner, repo_name))

    def _create_or_update(
        self,
        credentials: DeploymentCredentials,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str
    ) -> NetlifySite:
        build_settings = self._build_settings(config)
        body = {
            "name": config.name,
            "repo": {
                "provider": "github",
                "repo": f"{repo_owner}/{repo_name}",
                "repo_url": f"https://github.com/{repo_owner}/{repo_name}",
                "branch": config.production_branch,
                **build_settings,
            },
            "build_settings": build_settings,
        }

        logger.info(f"Creating Netlify site {config.name} for {repo_owner}/{repo_name}")

        try:
            data = self._make_request("POST", "/sites", credentials, json_data=body)
            return NetlifySite.parse(data)
        except (ConflictError, ValidationError) as e:
            existing = self._find_site_by_name(credentials, config.name)
            if existing is None:
                raise
            logger.info(f"Netlify site {config.name} already exists ({e.message}), updating build settings")

        data = self._make_request(
            "PATCH",
            f"/sites/{existing.id}",
            credentials,
            json_data={"build_settings": build_settings}
        )
        return NetlifySite.parse(data) if data else existing

    def get_project(self, credentials: DeploymentCredentials, project_id: str) -> Optional[DeploymentProject]:
        try:
            return self._to_project(self._fetch_site(credentials, project_id))
        except NotFoundError:
            return None

    def deploy(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        options: Optional[DeployOptions] = None
    ) -> DeploymentResult:
        """
        Start a build from the linked repository.

        The build response carries the id of the deploy it produces, which
        is the id used for status, logs and rollback.
        """
        options = options or DeployOptions()

        try:
            site = self._fetch_site(credentials, project_id)
        except NotFoundError:
            return DeploymentResult(success=False, error=f"Netlify site {project_id} not found")
        except APIError as e:
            logger.error(f"Failed to read Netlify site {project_id}: {e}")
            return DeploymentResult(success=False, error=e.message)

        body = {"clear_cache": True}
        if options.branch:
            body["branch"] = options.branch
        if options.commit_sha:
            body["commit_ref"] = options.commit_sha

        try:
            data = self._make_request("POST", f"/sites/{site.id}/builds", credentials, json_data=body)
            build = NetlifyBuild.parse(data)
        except APIError as e:
            logger.error(f"Failed to trigger Netlify build: {e}")
            return DeploymentResult(success=False, error=e.message)

        deployment_id = build.deploy_id or build.id
        logger.info(f"Netlify build started for {site.name}: deploy {deployment_id}")

        return DeploymentResult(
            success=True,
            deployment_id=deployment_id,
            deployment_url=site.live_url,
            preview_url=f"https://{deployment_id}--{site.name}.netlify.app" if deployment_id else None,
        )

    def get_deployment_status(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str
    ) -> DeploymentStatusResult:
        try:
            data = self._make_request("GET", f"/deploys/{quote(deployment_id, safe='')}", credentials)
            deploy = NetlifyDeploy.parse(data)
        except APIError as e:
            logger.error(f"Failed to get Netlify deploy status: {e}")
            return self._status_error(e)

        return DeploymentStatusResult(
            status=normalize_netlify_state(deploy.state),
            deployment_url=deploy.ssl_url or deploy.url,
            preview_url=deploy.deploy_ssl_url or deploy.deploy_url,
            created_at=deploy.created_at,
            completed_at=deploy.published_at,
            error=deploy.error_message,
        )

    def get_deployment_logs(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str,
        cursor: Optional[str] = None
    ) -> DeploymentLogsResult:
        try:
            log_text = self._make_request(
                "GET", f"/deploys/{quote(deployment_id, safe='')}/log", credentials, expect_text=True
            )
        except APIError as e:
            logger.error(f"Failed to get Netlify deploy log: {e}")
            return DeploymentLogsResult(logs=[e.message])

        lines = [line for line in log_text.split("\n") if line.strip()]
        return paginate_lines(lines, cursor, self.config.log_page_size)

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
            self._make_request(
                "POST",
                f"/sites/{quote(project_id, safe='')}/domain-aliases",
                credentials,
                json_data={"domain": domain}
            )
            # Re-read the site to see whether the domain is attached
            site = self._fetch_site(credentials, project_id)
        except APIError as e:
            logger.error(f"Failed to add domain {domain} to Netlify site: {e}")
            return CustomDomainResult(success=False, domain=domain, error=e.message)

        configured = domain in site.domain_aliases or site.custom_domain == domain

        return CustomDomainResult(
            success=True,
            domain=domain,
            configured=configured,
            verified=False,
            dns_records=netlify_records(domain, site.name, site.id),
        )

    def remove_custom_domain(self, credentials: DeploymentCredentials, project_id: str, domain: str) -> bool:
        try:
            self._make_request(
                "DELETE",
                f"/sites/{quote(project_id, safe='')}/domain-aliases/{quote(domain, safe='')}",
                credentials
            )
            return True
        except APIError as e:
            logger.error(f"Failed to remove domain {domain} from Netlify site: {e}")
            return False

    def get_dns_instructions(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str
    ) -> List[DnsRecord]:
        domain = validate_domain(domain)
        site = self._fetch_site(credentials, project_id)
        return netlify_records(domain, site.name, site.id)

    def rollback(self, credentials: DeploymentCredentials, project_id: str, deployment_id: str) -> DeploymentResult:
        """Publish a previous deploy again"""
        try:
            data = self._make_request(
                "POST",
                f"/sites/{quote(project_id, safe='')}/deploys/{quote(deployment_id, safe='')}/restore",
                credentials
            )
            deploy = NetlifyDeploy.parse(data)
        except APIError as e:
            logger.error(f"Failed to restore Netlify deploy {deployment_id}: {e}")
            return DeploymentResult(success=False, error=e.message)

        return DeploymentResult(
            success=True,
            deployment_id=deploy.id,
            deployment_url=deploy.ssl_url or deploy.url,
        )

    def delete_project(self, credentials: DeploymentCredentials, project_id: str) -> bool:
        try:
            self._make_request("DELETE", f"/sites/{quote(project_id, safe='')}", credentials)
            logger.info(f"Netlify site {project_id} deleted")
            return True
        except APIError as e:
            logger.error(f"Failed to delete Netlify site: {e}")
            return False

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        self._require_oauth_app(self.config.netlify_client_id)
        query = urlencode({
            "client_id": self.config.netlify_client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "response_type": "code",
        })
        return f"{NETLIFY_AUTHORIZE_URL}?{query}"

    def exchange_code_for_token(self, code: str, redirect_uri: str) -> str:
        self._require_oauth_app(
            self.config.netlify_client_id, self.config.netlify_client_secret, need_secret=True
        )
        return self._exchange_oauth_code(
            NETLIFY_TOKEN_URL,
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.config.netlify_client_id,
                "client_secret": self.config.netlify_client_secret,
                "redirect_uri": redirect_uri,
            }
        )

    def auto_setup_project(
        self,
        credentials: DeploymentCredentials,
        github_repo: GitHubRepository,
        config: AutoSetupConfig
    ) -> AutoSetupResult:
        name, site = self._find_setup_slot(
            github_repo, lambda candidate: self._find_site_by_name(credentials, candidate)
        )

        if site is None:
            project_config = self._hugo_project_config(name, config, github_repo.default_branch)
            site = self._create_or_update(credentials, project_config, github_repo.owner, github_repo.name)

        project = self._to_project(site)
        return AutoSetupResult(
            project=project,
            deployment_url=project.production_url,
            webhook_configured=site.build_settings is not None and bool(
                site.build_settings.repo_url or site.build_settings.repo_path
            ),
        )
