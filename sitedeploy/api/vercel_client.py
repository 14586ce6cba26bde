"""
Vercel Deployment Client
Handles all interactions with the Vercel REST API
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from pydantic import Field

from sitedeploy.api.base_provider import BaseDeploymentProvider, from_epoch_millis, VendorModel
from sitedeploy.api.dns_records import vercel_records
from sitedeploy.api.exceptions import APIError, ConflictError, NotFoundError
from sitedeploy.api.status_mapping import normalize_vercel_state
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
    DnsRecordType,
    GitHubRepository,
    ProjectConfig,
    ProviderCapabilities
)
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import validate_domain
from sitedeploy.utils.validators import ValidationError as InputValidationError

logger = get_logger(__name__)

VERCEL_AUTHORIZE_URL = "https://vercel.com/integrations/new"
VERCEL_OAUTH_SCOPE = "user team project deployment domain"


class VercelUserResponse(VendorModel):
    user: Optional[Dict[str, Any]] = None


class VercelProjectLink(VendorModel):
    type: Optional[str] = None
    org: Optional[str] = None
    repo: Optional[str] = None
    production_branch: Optional[str] = Field(default=None, alias="productionBranch")


class VercelProductionTarget(VendorModel):
    url: Optional[str] = None
    alias: List[str] = []


class VercelTargets(VendorModel):
    production: Optional[VercelProductionTarget] = None


class VercelProject(VendorModel):
    id: str
    name: str
    link: Optional[VercelProjectLink] = None
    targets: Optional[VercelTargets] = None
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    updated_at: Optional[int] = Field(default=None, alias="updatedAt")


class VercelDeployment(VendorModel):
    id: str
    name: Optional[str] = None
    url: Optional[str] = None
    ready_state: Optional[str] = Field(default=None, alias="readyState")
    state: Optional[str] = None
    target: Optional[str] = None
    created: Optional[int] = None
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    ready: Optional[int] = None
    error_message: Optional[str] = Field(default=None, alias="errorMessage")


class VercelEventPayload(VendorModel):
    text: Optional[str] = None


class VercelEvent(VendorModel):
    type: Optional[str] = None
    created: int = 0
    text: Optional[str] = None
    payload: Optional[VercelEventPayload] = None

    @property
    def message(self) -> Optional[str]:
        if self.payload and self.payload.text:
            return self.payload.text
        return self.text


class VercelVerification(VendorModel):
    type: str
    domain: str
    value: str


class VercelDomain(VendorModel):
    name: str
    verified: bool = False
    verification: List[VercelVerification] = []


class VercelClient(BaseDeploymentProvider):
    """
    Vercel deployment client.
    Team-scoped calls pass teamId as a query parameter.

    Documentation: https://vercel.com/docs/rest-api
    """

    platform = DeploymentPlatform.VERCEL
    name = "Vercel"
    capabilities = ProviderCapabilities(
        supports_preview_deployments=True,
        supports_custom_domains=True,
        supports_environment_variables=True,
        supports_rollback=True,
        supports_build_logs=True,
        supports_webhooks=True,
        supports_oauth=True,
        max_custom_domains=50,
        build_timeout=3600,
    )

    def __init__(self, config=None):
        super().__init__(config)
        self.base_url = self.config.vercel_api_url
        logger.debug(f"Vercel client initialized - Base URL: {self.base_url}")

    def _make_request(self, method, endpoint, credentials, **kwargs):
        if credentials is not None and credentials.team_id:
            params = dict(kwargs.pop("params", None) or {})
            params["teamId"] = credentials.team_id
            kwargs["params"] = params
        return super()._make_request(method, endpoint, credentials, **kwargs)

    def _extract_error_message(self, error_data: Dict[str, Any]) -> Optional[str]:
        # Vercel wraps errors as {"error": {"code": ..., "message": ...}}
        error = error_data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return super()._extract_error_message(error_data)

    def _to_project(self, project: VercelProject) -> DeploymentProject:
        production = project.targets.production if project.targets else None

        if production and production.url:
            production_url = f"https://{production.url}"
        else:
            production_url = f"https://{project.name}.vercel.app"

        custom_domains = [
            alias for alias in (production.alias if production else [])
            if not alias.endswith(".vercel.app")
        ]

        return DeploymentProject(
            id=project.id,
            name=project.name,
            platform=self.platform,
            production_url=production_url,
            custom_domains=custom_domains,
            created_at=from_epoch_millis(project.created_at),
            updated_at=from_epoch_millis(project.updated_at),
        )

    def _fetch_project(self, credentials: DeploymentCredentials, id_or_name: str) -> VercelProject:
        data = self._make_request("GET", f"/v9/projects/{quote(id_or_name, safe='')}", credentials)
        return VercelProject.parse(data)

    def _lookup_project(self, credentials: DeploymentCredentials, name: str) -> Optional[VercelProject]:
        try:
            return self._fetch_project(credentials, name)
        except NotFoundError:
            return None

    @staticmethod
    def _build_settings(config: ProjectConfig) -> Dict[str, Any]:
        return {
            "framework": "hugo" if config.framework == "hugo" else None,
            "buildCommand": config.build_command,
            "outputDirectory": config.output_directory,
            "rootDirectory": config.root_directory,
        }

    def _is_linked_to(self, vendor_project: VercelProject, repo: GitHubRepository) -> bool:
        link = vendor_project.link
        return bool(
            link
            and (link.type or "github") == "github"
            and (link.org or "").lower() == repo.owner.lower()
            and (link.repo or "").lower() == repo.name.lower()
        )

    def validate_credentials(self, credentials: DeploymentCredentials) -> bool:
        try:
            data = self._make_request("GET", "/v2/user", credentials)
            return VercelUserResponse.parse(data).user is not None
        except APIError as e:
            logger.warning(f"Vercel credential check failed: {e}")
            return False

    def create_project(
        self,
        credentials: DeploymentCredentials,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str
    ) -> DeploymentProject:
        """
        Create a Vercel project linked to a GitHub repository.

        Args:
            credentials: Vercel credentials
            config: Build settings
            repo_owner: GitHub owner
            repo_name: GitHub repository name

        Returns:
            The created project, or the existing one (with build settings
            updated) when the name is already taken
        """
        return self._to_project(self._create_or_update(credentials, config, repo_owner, repo_name))

    def _create_or_update(
        self,
        credentials: DeploymentCredentials,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str
    ) -> VercelProject:
        body = {
            "name": config.name,
            "gitRepository": {"type": "github", "repo": f"{repo_owner}/{repo_name}"},
            **self._build_settings(config),
        }
        if config.environment_variables:
            body["environmentVariables"] = [
                {
                    "key": key,
                    "value": value,
                    "target": ["production", "preview", "development"],
                    "type": "plain",
                }
                for key, value in config.environment_variables.items()
            ]

        logger.info(f"Creating Vercel project {config.name} for {repo_owner}/{repo_name}")

        try:
            data = self._make_request("POST", "/v10/projects", credentials, json_data=body)
            return VercelProject.parse(data)
        except ConflictError:
            logger.info(f"Vercel project {config.name} already exists, updating build settings")

        existing = self._fetch_project(credentials, config.name)
        data = self._make_request(
            "PATCH",
            f"/v9/projects/{existing.id}",
            credentials,
            json_data=self._build_settings(config)
        )
        return VercelProject.parse(data) if data else existing

    def get_project(self, credentials: DeploymentCredentials, project_id: str) -> Optional[DeploymentProject]:
        project = self._lookup_project(credentials, project_id)
        return self._to_project(project) if project else None

    def deploy(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        options: Optional[DeployOptions] = None
    ) -> DeploymentResult:
        options = options or DeployOptions()

        try:
            project = self._lookup_project(credentials, project_id)
            if project is None:
                return DeploymentResult(success=False, error=f"Vercel project {project_id} not found")

            if project.link is None:
                return DeploymentResult(success=False, error="Project is not linked to a Git repository")

            git_source = {
                "type": "github",
                "org": project.link.org,
                "repo": project.link.repo,
                "ref": options.branch or project.link.production_branch or self.config.default_branch,
            }
            if options.commit_sha:
                git_source["sha"] = options.commit_sha

            body = {"name": project.name, "project": project.id, "gitSource": git_source}
            if options.is_production:
                body["target"] = "production"

            data = self._make_request("POST", "/v13/deployments", credentials, json_data=body)
            deployment = VercelDeployment.parse(data)

        except APIError as e:
            logger.error(f"Failed to trigger Vercel deployment: {e}")
            return DeploymentResult(success=False, error=e.message)

        url = f"https://{deployment.url}" if deployment.url else None
        logger.info(f"Vercel deployment {deployment.id} created for {project_id}")

        return DeploymentResult(
            success=True,
            deployment_id=deployment.id,
            deployment_url=url,
            preview_url=url if deployment.target != "production" else None,
        )

    def get_deployment_status(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str
    ) -> DeploymentStatusResult:
        try:
            data = self._make_request("GET", f"/v13/deployments/{quote(deployment_id, safe='')}", credentials)
            deployment = VercelDeployment.parse(data)
        except APIError as e:
            logger.error(f"Failed to get Vercel deployment status: {e}")
            return self._status_error(e)

        url = f"https://{deployment.url}" if deployment.url else None
        return DeploymentStatusResult(
            status=normalize_vercel_state(deployment.ready_state or deployment.state),
            deployment_url=url,
            preview_url=url if deployment.target != "production" else None,
            created_at=from_epoch_millis(deployment.created or deployment.created_at),
            completed_at=from_epoch_millis(deployment.ready),
            error=deployment.error_message,
        )

    def get_deployment_logs(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str,
        cursor: Optional[str] = None
    ) -> DeploymentLogsResult:
        """
        Build events since the cursor. The cursor is the millisecond
        timestamp just after the last event returned. A short page means
        the stream is exhausted for now.
        """
        page_size = self.config.log_page_size
        params = {"limit": page_size}
        if cursor:
            params["since"] = cursor

        try:
            data = self._make_request(
                "GET",
                f"/v2/deployments/{quote(deployment_id, safe='')}/events",
                credentials,
                params=params
            )
            events = [VercelEvent.parse(item) for item in (data if isinstance(data, list) else [])]
        except APIError as e:
            logger.error(f"Failed to get Vercel deployment logs: {e}")
            return DeploymentLogsResult(logs=[e.message])

        logs = []
        for event in events:
            if not event.message:
                continue
            timestamp = datetime.fromtimestamp(event.created / 1000, tz=timezone.utc).isoformat()
            logs.append(f"[{timestamp}] {event.message}")

        has_more = len(events) >= page_size
        return DeploymentLogsResult(
            logs=logs,
            has_more=has_more,
            next_cursor=str(events[-1].created + 1) if events else None,
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
            data = self._make_request(
                "POST",
                f"/v10/projects/{quote(project_id, safe='')}/domains",
                credentials,
                json_data={"name": domain}
            )
            result = VercelDomain.parse(data)
        except APIError as e:
            logger.error(f"Failed to add domain {domain} to Vercel project: {e}")
            return CustomDomainResult(success=False, domain=domain, error=e.message)

        dns_records = []
        if not result.verified:
            for record in result.verification:
                try:
                    record_type = DnsRecordType(record.type.upper())
                except ValueError:
                    logger.warning(f"Skipping unsupported Vercel verification record type {record.type}")
                    continue
                dns_records.append(DnsRecord(type=record_type, name=record.domain, value=record.value))

        dns_records.extend(vercel_records(domain))

        return CustomDomainResult(
            success=True,
            domain=result.name,
            configured=True,
            verified=result.verified,
            dns_records=dns_records,
        )

    def remove_custom_domain(self, credentials: DeploymentCredentials, project_id: str, domain: str) -> bool:
        try:
            self._make_request(
                "DELETE",
                f"/v9/projects/{quote(project_id, safe='')}/domains/{quote(domain, safe='')}",
                credentials
            )
            return True
        except APIError as e:
            logger.error(f"Failed to remove domain {domain} from Vercel project: {e}")
            return False

    def get_dns_instructions(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str
    ) -> List[DnsRecord]:
        return vercel_records(validate_domain(domain))

    def rollback(self, credentials: DeploymentCredentials, project_id: str, deployment_id: str) -> DeploymentResult:
        """Promote a previous deployment to production by redeploying it"""
        try:
            data = self._make_request("GET", f"/v13/deployments/{quote(deployment_id, safe='')}", credentials)
            original = VercelDeployment.parse(data)

            data = self._make_request(
                "POST",
                "/v13/deployments",
                credentials,
                json_data={
                    "name": original.name,
                    "project": project_id,
                    "target": "production",
                    "deploymentId": deployment_id,
                }
            )
            deployment = VercelDeployment.parse(data)
        except APIError as e:
            logger.error(f"Failed to roll back Vercel deployment {deployment_id}: {e}")
            return DeploymentResult(success=False, error=e.message)

        return DeploymentResult(
            success=True,
            deployment_id=deployment.id,
            deployment_url=f"https://{deployment.url}" if deployment.url else None,
        )

    def delete_project(self, credentials: DeploymentCredentials, project_id: str) -> bool:
        try:
            self._make_request("DELETE", f"/v9/projects/{quote(project_id, safe='')}", credentials)
            logger.info(f"Vercel project {project_id} deleted")
            return True
        except APIError as e:
            logger.error(f"Failed to delete Vercel project: {e}")
            return False

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        self._require_oauth_app(self.config.vercel_client_id)
        query = urlencode({
            "client_id": self.config.vercel_client_id,
            "redirect_uri": redirect_uri,
            "scope": VERCEL_OAUTH_SCOPE,
            "state": state,
        })
        return f"{VERCEL_AUTHORIZE_URL}?{query}"

    def exchange_code_for_token(self, code: str, redirect_uri: str) -> str:
        self._require_oauth_app(
            self.config.vercel_client_id, self.config.vercel_client_secret, need_secret=True
        )
        return self._exchange_oauth_code(
            f"{self.base_url}/v2/oauth/access_token",
            {
                "client_id": self.config.vercel_client_id,
                "client_secret": self.config.vercel_client_secret,
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
        """
        One-click setup: pick a free project name, link it to the repository
        and configure Hugo. Vercel deploys on every push once linked.
        """
        name, existing = self._find_setup_slot(
            github_repo, lambda candidate: self._lookup_project(credentials, candidate)
        )

        if existing is None:
            project_config = self._hugo_project_config(name, config, github_repo.default_branch)
            existing = self._create_or_update(credentials, project_config, github_repo.owner, github_repo.name)

        project = self._to_project(existing)
        linked = existing.link is not None

        return AutoSetupResult(
            project=project,
            deployment_url=project.production_url,
            webhook_configured=linked,
        )
