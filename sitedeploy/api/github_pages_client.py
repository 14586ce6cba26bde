"""
GitHub Pages Deployment Client
Handles all interactions with the GitHub REST API for Pages sites

GitHub Pages deploys on push through an Actions workflow, so most
operations here configure the Pages site and observe workflow runs.
Project ids are "owner/repo".
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sitedeploy.api.base_provider import BaseDeploymentProvider, paginate_lines, VendorModel
from sitedeploy.api.dns_records import github_pages_records
from sitedeploy.api.exceptions import (
    APIError,
    ConflictError,
    InvalidProjectIdError,
    NotFoundError
)
from sitedeploy.api.status_mapping import normalize_github_run
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
from sitedeploy.utils.validators import split_repo_id, validate_domain
from sitedeploy.utils.validators import ValidationError as InputValidationError

logger = get_logger(__name__)

# Allowance for clock drift between this host and GitHub when matching dispatched runs
DISPATCH_CLOCK_SKEW = timedelta(seconds=30)


class GitHubUser(VendorModel):
    login: Optional[str] = None


class GitHubPagesSite(VendorModel):
    html_url: Optional[str] = None
    cname: Optional[str] = None
    status: Optional[str] = None
    build_type: Optional[str] = None


class GitHubWorkflowRun(VendorModel):
    id: int
    status: Optional[str] = None
    conclusion: Optional[str] = None
    head_branch: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GitHubWorkflowRunList(VendorModel):
    workflow_runs: List[GitHubWorkflowRun] = []


class GitHubJob(VendorModel):
    id: int
    name: str = ""
    status: Optional[str] = None
    conclusion: Optional[str] = None


class GitHubJobList(VendorModel):
    jobs: List[GitHubJob] = []


class GitHubPagesClient(BaseDeploymentProvider):
    """
    GitHub Pages deployment client.
    Uses the bearer token the host application obtained via GitHub OAuth.

    Documentation: https://docs.github.com/rest/pages
    """

    platform = DeploymentPlatform.GITHUB_PAGES
    name = "GitHub Pages"
    capabilities = ProviderCapabilities(
        supports_preview_deployments=False,
        supports_custom_domains=True,
        supports_environment_variables=False,
        supports_rollback=False,
        supports_build_logs=True,
        supports_webhooks=True,
        supports_oauth=False,
        max_custom_domains=1,
        build_timeout=600,
    )

    def __init__(self, config=None):
        super().__init__(config)
        self.base_url = self.config.github_api_url
        logger.debug(f"GitHub Pages client initialized - Base URL: {self.base_url}")

    def _auth_headers(self, credentials: DeploymentCredentials):
        headers = super()._auth_headers(credentials)
        headers["X-GitHub-Api-Version"] = "2022-11-28"
        return headers

    def _make_request(self, method, endpoint, credentials, **kwargs):
        headers = kwargs.pop("headers", None) or {}
        if not kwargs.get("expect_text"):
            headers.setdefault("Accept", "application/vnd.github+json")
        return super()._make_request(method, endpoint, credentials, headers=headers, **kwargs)

    @staticmethod
    def _parse_project_id(project_id: str) -> Tuple[str, str]:
        try:
            return split_repo_id(project_id)
        except InputValidationError as e:
            raise InvalidProjectIdError(str(e)) from e

    @staticmethod
    def _default_url(owner: str, repo: str) -> str:
        return f"https://{owner}.github.io/{repo}"

    def _to_project(self, owner: str, repo: str, site: GitHubPagesSite) -> DeploymentProject:
        return DeploymentProject(
            id=f"{owner}/{repo}",
            name=repo,
            platform=self.platform,
            production_url=site.html_url or self._default_url(owner, repo),
            custom_domains=[site.cname] if site.cname else [],
        )

    def _fetch_pages(self, credentials: DeploymentCredentials, owner: str, repo: str) -> GitHubPagesSite:
        data = self._make_request("GET", f"/repos/{owner}/{repo}/pages", credentials)
        return GitHubPagesSite.parse(data)

    def _pages_url(self, credentials: DeploymentCredentials, owner: str, repo: str) -> str:
        """Live Pages URL, falling back to the github.io default while Pages is not ready"""
        try:
            return self._fetch_pages(credentials, owner, repo).html_url or self._default_url(owner, repo)
        except APIError as e:
            logger.debug(f"Pages site for {owner}/{repo} not readable yet: {e}")
            return self._default_url(owner, repo)

    def _latest_run(
        self,
        credentials: DeploymentCredentials,
        owner: str,
        repo: str,
        branch: Optional[str] = None,
        dispatched_after: Optional[datetime] = None
    ) -> Optional[GitHubWorkflowRun]:
        params = {"per_page": 1}
        if branch:
            params["branch"] = branch
        if dispatched_after:
            params["event"] = "workflow_dispatch"
            params["created"] = f">={dispatched_after.strftime('%Y-%m-%dT%H:%M:%SZ')}"
        data = self._make_request("GET", f"/repos/{owner}/{repo}/actions/runs", credentials, params=params)
        runs = GitHubWorkflowRunList.parse(data).workflow_runs
        return runs[0] if runs else None

    def validate_credentials(self, credentials: DeploymentCredentials) -> bool:
        try:
            data = self._make_request("GET", "/user", credentials)
            return bool(GitHubUser.parse(data).login)
        except APIError as e:
            logger.warning(f"GitHub credential check failed: {e}")
            return False

    def create_project(
        self,
        credentials: DeploymentCredentials,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str
    ) -> DeploymentProject:
        """
        Enable GitHub Pages with GitHub Actions as the build source.
        If Pages is already enabled the site is switched to workflow builds
        and its current configuration returned.
        """
        endpoint = f"/repos/{repo_owner}/{repo_name}/pages"
        logger.info(f"Enabling GitHub Pages for {repo_owner}/{repo_name}")

        try:
            data = self._make_request("POST", endpoint, credentials, json_data={"build_type": "workflow"})
            site = GitHubPagesSite.parse(data)
        except ConflictError:
            logger.info(f"GitHub Pages already enabled for {repo_owner}/{repo_name}, updating instead")
            self._make_request("PUT", endpoint, credentials, json_data={"build_type": "workflow"})
            site = self._fetch_pages(credentials, repo_owner, repo_name)

        return self._to_project(repo_owner, repo_name, site)

    def get_project(self, credentials: DeploymentCredentials, project_id: str) -> Optional[DeploymentProject]:
        owner, repo = self._parse_project_id(project_id)
        try:
            site = self._fetch_pages(credentials, owner, repo)
        except NotFoundError:
            # Pages not enabled
            return None
        return self._to_project(owner, repo, site)

    def deploy(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        options: Optional[DeployOptions] = None
    ) -> DeploymentResult:
        """
        Dispatch the Pages workflow and report the run it started.

        Dispatch is asynchronous: the new run is looked up by event and
        creation time, and while it is not listed yet the latest run on the
        branch is reported instead (with a note), which may be the previous
        build. A failed dispatch is not fatal by itself because pushes
        already trigger the workflow; it only fails the deploy when there is
        also no run on the branch to report.
        """
        options = options or DeployOptions()
        branch = options.branch or self.config.default_branch
        notes: List[str] = []

        try:
            owner, repo = self._parse_project_id(project_id)
            if self.get_project(credentials, project_id) is None:
                return DeploymentResult(
                    success=False,
                    error=f"GitHub Pages is not enabled for {project_id}"
                )

            dispatched_at = datetime.now(timezone.utc) - DISPATCH_CLOCK_SKEW
            dispatched = True
            try:
                self._make_request(
                    "POST",
                    f"/repos/{owner}/{repo}/actions/workflows/{self.config.github_workflow_id}/dispatches",
                    credentials,
                    json_data={"ref": branch}
                )
            except APIError as e:
                dispatched = False
                logger.warning(f"Workflow dispatch failed for {project_id}: {e}")
                notes.append(
                    f"Workflow dispatch failed ({e.message}); relying on push-triggered deployment"
                )

            latest_run = None
            if dispatched:
                latest_run = self._latest_run(
                    credentials, owner, repo, branch=branch, dispatched_after=dispatched_at
                )
                if latest_run is None:
                    notes.append("Dispatched workflow run is not listed yet; reporting the latest run on the branch")

            if latest_run is None:
                latest_run = self._latest_run(credentials, owner, repo, branch=branch)

            if latest_run is None and not dispatched:
                return DeploymentResult(
                    success=False,
                    error=f"Could not trigger {self.config.github_workflow_id} on {branch} and no workflow run exists",
                    logs=notes
                )

            return DeploymentResult(
                success=True,
                deployment_id=str(latest_run.id) if latest_run else project_id,
                deployment_url=self._pages_url(credentials, owner, repo),
                logs=notes
            )

        except APIError as e:
            logger.error(f"Failed to trigger GitHub Pages deployment: {e}")
            return DeploymentResult(success=False, error=e.message, logs=notes)

    def get_deployment_status(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str
    ) -> DeploymentStatusResult:
        try:
            owner, repo = self._parse_project_id(project_id)

            if deployment_id.isdigit():
                data = self._make_request("GET", f"/repos/{owner}/{repo}/actions/runs/{deployment_id}", credentials)
                run = GitHubWorkflowRun.parse(data)
            else:
                # Not a run id (e.g. deploy() found no run yet): use the latest run
                run = self._latest_run(credentials, owner, repo)
                if run is None:
                    return DeploymentStatusResult(status=DeploymentStatus.PENDING)

            status = normalize_github_run(run.status, run.conclusion)
            return DeploymentStatusResult(
                status=status,
                deployment_url=self._pages_url(credentials, owner, repo),
                created_at=run.created_at,
                completed_at=run.updated_at if status.is_terminal else None,
                error=f"Workflow {run.conclusion}" if status == DeploymentStatus.FAILED else None,
            )

        except APIError as e:
            logger.error(f"Failed to get GitHub Pages deployment status: {e}")
            return self._status_error(e)

    def get_deployment_logs(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str,
        cursor: Optional[str] = None
    ) -> DeploymentLogsResult:
        """Plain-text log of the run's failed job (or first job), paginated by line offset"""
        if not deployment_id.isdigit():
            return DeploymentLogsResult(logs=["Invalid deployment ID"])

        try:
            owner, repo = self._parse_project_id(project_id)
            data = self._make_request(
                "GET", f"/repos/{owner}/{repo}/actions/runs/{deployment_id}/jobs", credentials
            )
            jobs = GitHubJobList.parse(data).jobs
        except APIError as e:
            logger.error(f"Failed to list jobs for run {deployment_id}: {e}")
            return DeploymentLogsResult(logs=[e.message])

        if not jobs:
            return DeploymentLogsResult(logs=["No jobs found for this workflow run"])

        target_job = next((job for job in jobs if job.conclusion == "failure"), jobs[0])

        try:
            log_text = self._make_request(
                "GET",
                f"/repos/{owner}/{repo}/actions/jobs/{target_job.id}/logs",
                credentials,
                expect_text=True
            )
        except APIError as e:
            # Logs are not available until the job has started
            logger.debug(f"Logs for job {target_job.id} not available: {e}")
            return DeploymentLogsResult(logs=[
                f'Job "{target_job.name}" - Status: {target_job.status}, '
                f'Conclusion: {target_job.conclusion or "in progress"}'
            ])

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
            owner, repo = self._parse_project_id(project_id)
            self._make_request(
                "PUT",
                f"/repos/{owner}/{repo}/pages",
                credentials,
                json_data={"cname": domain, "https_enforced": True}
            )
        except APIError as e:
            logger.error(f"Failed to set custom domain {domain}: {e}")
            return CustomDomainResult(success=False, domain=domain, error=e.message)

        logger.info(f"Custom domain {domain} set on {project_id}")
        return CustomDomainResult(
            success=True,
            domain=domain,
            configured=True,
            verified=False,  # GitHub verifies DNS asynchronously
            dns_records=github_pages_records(domain, owner),
        )

    def remove_custom_domain(self, credentials: DeploymentCredentials, project_id: str, domain: str) -> bool:
        try:
            owner, repo = self._parse_project_id(project_id)
            self._make_request("PUT", f"/repos/{owner}/{repo}/pages", credentials, json_data={"cname": None})
        except APIError as e:
            logger.error(f"Failed to remove custom domain from {project_id}: {e}")
            return False

        self._delete_cname_file(credentials, owner, repo)
        return True

    def _delete_cname_file(self, credentials: DeploymentCredentials, owner: str, repo: str) -> None:
        """Remove a CNAME file left in the repository, if there is one"""
        try:
            data = self._make_request("GET", f"/repos/{owner}/{repo}/contents/CNAME", credentials)
        except NotFoundError:
            return
        except APIError as e:
            logger.warning(f"Could not inspect CNAME file in {owner}/{repo}: {e}")
            return

        if not isinstance(data, dict) or not data.get("sha"):
            return

        try:
            self._make_request(
                "DELETE",
                f"/repos/{owner}/{repo}/contents/CNAME",
                credentials,
                json_data={"message": "Remove custom domain", "sha": data["sha"]}
            )
        except APIError as e:
            logger.warning(f"Could not delete CNAME file in {owner}/{repo}: {e}")

    def get_dns_instructions(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str
    ) -> List[DnsRecord]:
        owner, _ = self._parse_project_id(project_id)
        return github_pages_records(validate_domain(domain), owner)

    def rollback(self, credentials: DeploymentCredentials, project_id: str, deployment_id: str) -> DeploymentResult:
        return DeploymentResult(
            success=False,
            error=(
                "Rollback is not supported for GitHub Pages. "
                "Please revert your git commits to restore a previous version."
            )
        )

    def delete_project(self, credentials: DeploymentCredentials, project_id: str) -> bool:
        try:
            owner, repo = self._parse_project_id(project_id)
            self._make_request("DELETE", f"/repos/{owner}/{repo}/pages", credentials)
            logger.info(f"GitHub Pages disabled for {project_id}")
            return True
        except APIError as e:
            logger.error(f"Failed to disable GitHub Pages: {e}")
            return False

    def auto_setup_project(
        self,
        credentials: DeploymentCredentials,
        github_repo: GitHubRepository,
        config: AutoSetupConfig
    ) -> AutoSetupResult:
        """
        Pages sites live in the repository itself, so there is no name to
        pick: enabling Pages is idempotent and Actions already deploys on push.
        """
        project_config = self._hugo_project_config(github_repo.name, config, github_repo.default_branch)
        project = self.create_project(credentials, project_config, github_repo.owner, github_repo.name)

        return AutoSetupResult(
            project=project,
            deployment_url=project.production_url,
            webhook_configured=True,
        )

