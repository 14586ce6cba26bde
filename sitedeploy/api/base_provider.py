"""
Base Deployment Provider Interface
Abstract base class for hosting platform adapters
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from sitedeploy.api.exceptions import (
    APIError,
    AuthenticationError,
    ConflictError,
    NetworkError,
    NotFoundError,
    OAuthConfigurationError,
    OAuthNotSupportedError,
    RateLimitError,
    ServerError,
    ValidationError
)
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
from sitedeploy.utils.config import get_settings, Settings
from sitedeploy.utils.logger import get_logger
from sitedeploy.utils.validators import sanitize_project_name

logger = get_logger(__name__)

IDEMPOTENT_METHODS = {"GET", "HEAD", "PUT", "DELETE"}
RETRYABLE_ERRORS = (NetworkError, ServerError, RateLimitError)


class VendorModel(BaseModel):
    """Base for vendor response DTOs. Unknown vendor fields are dropped."""

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def parse(cls, data: Any):
        """
        Validate a vendor payload.

        Raises:
            APIError: If a successful response does not have the expected shape
        """
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise APIError(
                f"Unexpected {cls.__name__} response: {e.error_count()} invalid field(s)",
                response_data=data if isinstance(data, dict) else {}
            ) from e


def from_epoch_millis(value: Optional[int]) -> Optional[datetime]:
    """Convert a millisecond Unix timestamp (Vercel style) to an aware datetime"""
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def paginate_lines(lines: List[str], cursor: Optional[str], page_size: int) -> DeploymentLogsResult:
    """
    Offset pagination over log lines. The cursor is the index of the first
    line of the next page, as a string.
    """
    try:
        offset = max(int(cursor), 0) if cursor else 0
    except ValueError:
        offset = 0

    page = lines[offset:offset + page_size]
    has_more = offset + page_size < len(lines)

    return DeploymentLogsResult(
        logs=page,
        has_more=has_more,
        next_cursor=str(offset + page_size) if has_more else None,
    )


class BaseDeploymentProvider(ABC):
    """
    Abstract base class for deployment providers.
    All platform adapter implementations must inherit this class.

    Operations return typed results for expected failures (None for "not
    found", success=False results, False booleans). Only transport/auth
    failures on operations without an error slot raise APIError.
    """

    platform: DeploymentPlatform
    name: str
    capabilities: ProviderCapabilities
    base_url: str = ""

    def __init__(self, config: Optional[Settings] = None):
        """
        Initialize the provider.

        Args:
            config: Optional Settings object. If None, loads from get_settings()
        """
        self.config = config or get_settings()

    # ------------------------------------------------------------------
    # HTTP transport
    # ------------------------------------------------------------------

    def _auth_headers(self, credentials: DeploymentCredentials) -> Dict[str, str]:
        """
        Build the authorization header for a call.

        Raises:
            AuthenticationError: If the credentials carry no access token
        """
        if not credentials.access_token:
            raise AuthenticationError(f"{self.name} access token is required")
        return {"Authorization": f"Bearer {credentials.access_token}"}

    def _make_request(
        self,
        method: str,
        endpoint: str,
        credentials: Optional[DeploymentCredentials],
        params: Optional[Dict] = None,
        json_data: Optional[Any] = None,
        data: Optional[Dict] = None,
        files: Optional[Dict] = None,
        expect_text: bool = False,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        Make an HTTP request to the platform API with error handling.
        Idempotent methods are retried on network, 5xx and 429 errors.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            endpoint: API path relative to base_url, or an absolute URL
            credentials: Credentials used for the bearer token. None for
                         unauthenticated calls (OAuth code exchange).
            params: Query parameters
            json_data: JSON body
            data: Form body
            files: Multipart form fields
            expect_text: Return the response body as text instead of JSON
            headers: Extra headers

        Returns:
            Parsed JSON (dict or list), text, or {} for empty responses

        Raises:
            Various APIError subclasses based on error type
        """
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}{endpoint}"

        request_headers = {"Accept": "text/plain" if expect_text else "application/json"}
        if credentials is not None:
            request_headers.update(self._auth_headers(credentials))
        if json_data is not None:
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})

        attempts = self.config.http_retry_attempts if method.upper() in IDEMPOTENT_METHODS else 1
        retryer = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self.config.http_retry_min_wait,
                max=self.config.http_retry_max_wait
            ),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True
        )

        return retryer(
            self._send,
            method,
            url,
            request_headers,
            params=params,
            json_data=json_data,
            data=data,
            files=files,
            expect_text=expect_text
        )

    def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        params: Optional[Dict] = None,
        json_data: Optional[Any] = None,
        data: Optional[Dict] = None,
        files: Optional[Dict] = None,
        expect_text: bool = False
    ) -> Any:
        logger.debug(f"{method} {url}")
        if params:
            logger.debug(f"Params: {params}")

        try:
            response = requests.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                json=json_data,
                data=data,
                files=files,
                timeout=self.config.http_timeout
            )
        except requests.exceptions.Timeout:
            raise NetworkError(f"Request timed out after {self.config.http_timeout} seconds")

        except requests.exceptions.ConnectionError as e:
            raise NetworkError(f"Connection error: {str(e)}")

        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Network error: {str(e)}")

        status = response.status_code

        if 200 <= status < 300:
            if expect_text:
                return response.text or ""
            if status == 204 or not response.content:
                return {}
            try:
                return response.json()
            except ValueError:
                # Non-JSON success body (e.g. an empty text/html acknowledgement)
                return {}

        error_data = self._parse_error_response(response)
        message = self._extract_error_message(error_data) or f"{self.name} API error: HTTP {status}"

        if status == 400:
            raise ValidationError(message, status_code=400, response_data=error_data)

        elif status in (401, 403):
            raise AuthenticationError(message, status_code=status, response_data=error_data)

        elif status == 404:
            raise NotFoundError(message, status_code=404, response_data=error_data)

        elif status == 409:
            raise ConflictError(message, status_code=409, response_data=error_data)

        elif status == 422:
            raise ValidationError(message, status_code=422, response_data=error_data)

        elif status == 429:
            raise RateLimitError(
                f"{self.name} API rate limit exceeded. Please wait before retrying.",
                status_code=429,
                response_data=error_data
            )

        elif 500 <= status < 600:
            raise ServerError(
                f"{self.name} server error: {message}",
                status_code=status,
                response_data=error_data
            )

        raise APIError(
            f"Unexpected error: {message}",
            status_code=status,
            response_data=error_data
        )

    def _parse_error_response(self, response: requests.Response) -> Dict[str, Any]:
        """
        Parse an error response body.

        Args:
            response: Response object

        Returns:
            Error data dictionary
        """
        try:
            error_data = response.json()
            if isinstance(error_data, dict):
                return error_data
            return {"message": str(error_data)}
        except Exception:
            return {
                "message": response.text or "Unknown error",
                "code": response.status_code
            }

    def _extract_error_message(self, error_data: Dict[str, Any]) -> Optional[str]:
        """
        Pull a human-readable message out of a vendor error body.
        Adapters override this for their error envelope.
        """
        return (
            error_data.get("message")
            or error_data.get("error_description")
            or (error_data.get("error") if isinstance(error_data.get("error"), str) else None)
        )

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _hugo_project_config(
        self,
        name: str,
        setup_config: AutoSetupConfig,
        production_branch: str
    ) -> ProjectConfig:
        """Build settings used by one-click setup of a blog repository"""
        if setup_config.framework == "hugo":
            return ProjectConfig(
                name=name,
                framework="hugo",
                build_command=self.config.hugo_build_command,
                output_directory=self.config.hugo_output_directory,
                environment_variables={
                    "HUGO_VERSION": setup_config.hugo_version or self.config.hugo_version
                },
                production_branch=production_branch
            )

        return ProjectConfig(
            name=name,
            framework="other",
            build_command="npm run build",
            output_directory="dist",
            production_branch=production_branch
        )

    def _find_setup_slot(
        self,
        repo: GitHubRepository,
        lookup: Callable[[str], Optional[Any]]
    ) -> Tuple[str, Optional[Any]]:
        """
        Pick the project name auto-setup should use for a repository.

        Starts from the sanitized repository name. A project with that name
        that is linked to the same repository is reused; one linked to a
        different repository pushes the name to the next numeric suffix.

        Args:
            repo: Repository being connected
            lookup: Returns the vendor project DTO for a name, or None

        Returns:
            (name, existing DTO or None)

        Raises:
            ConflictError: If every candidate name is taken by another repo
        """
        base_name = sanitize_project_name(repo.name)

        for attempt in range(self.config.auto_setup_max_attempts):
            candidate = base_name if attempt == 0 else f"{base_name}-{attempt}"
            existing = lookup(candidate)

            if existing is None:
                return candidate, None

            if self._is_linked_to(existing, repo):
                logger.info(f"Reusing {self.name} project '{candidate}' linked to {repo.full_name}")
                return candidate, existing

            logger.info(f"{self.name} project '{candidate}' belongs to another repository, trying next name")

        raise ConflictError(
            f"No free {self.name} project name for {repo.full_name} "
            f"after {self.config.auto_setup_max_attempts} attempts"
        )

    def _is_linked_to(self, vendor_project: Any, repo: GitHubRepository) -> bool:
        """Whether a vendor project DTO is connected to the given repository"""
        return False

    def _require_oauth_app(self, client_id: str, client_secret: str = "", need_secret: bool = False) -> None:
        if not client_id or (need_secret and not client_secret):
            raise OAuthConfigurationError(
                f"{self.name} OAuth client credentials are not configured"
            )

    def _exchange_oauth_code(self, token_url: str, form: Dict[str, str]) -> str:
        """POST an authorization code to a token endpoint and return the access token"""
        response = self._make_request("POST", token_url, None, data=form)
        token = response.get("access_token") if isinstance(response, dict) else None
        if not token:
            raise AuthenticationError(f"{self.name} token exchange returned no access token")
        return token

    def _status_error(self, error: APIError) -> DeploymentStatusResult:
        """
        Status snapshot for a failed poll. Transient errors keep the
        deployment pending so callers keep polling.
        """
        if isinstance(error, RETRYABLE_ERRORS):
            return DeploymentStatusResult(status=DeploymentStatus.PENDING, error=error.message)
        return DeploymentStatusResult(status=DeploymentStatus.FAILED, error=error.message)

    # ------------------------------------------------------------------
    # Optional OAuth helpers
    # ------------------------------------------------------------------

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        """
        Get the OAuth authorization URL.
        Only available when capabilities.supports_oauth is True.

        Raises:
            OAuthNotSupportedError: For platforms without an OAuth flow
        """
        raise OAuthNotSupportedError(f"{self.name} does not support OAuth")

    def exchange_code_for_token(self, code: str, redirect_uri: str) -> str:
        """
        Exchange an OAuth authorization code for an access token.
        Only available when capabilities.supports_oauth is True.

        Raises:
            OAuthNotSupportedError: For platforms without an OAuth flow
        """
        raise OAuthNotSupportedError(f"{self.name} does not support OAuth")

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_credentials(self, credentials: DeploymentCredentials) -> bool:
        """
        Check credentials with one cheap authenticated call.

        Returns:
            True if the platform accepts the token. Never raises for
            invalid credentials.
        """
        pass

    @abstractmethod
    def create_project(
        self,
        credentials: DeploymentCredentials,
        config: ProjectConfig,
        repo_owner: str,
        repo_name: str
    ) -> DeploymentProject:
        """
        Create (or link) a hosting project for a GitHub repository.
        A project that already exists is fetched/updated, not reported as
        an error, so repeated setup converges.

        Raises:
            APIError: On transport or authentication failures
        """
        pass

    @abstractmethod
    def get_project(
        self,
        credentials: DeploymentCredentials,
        project_id: str
    ) -> Optional[DeploymentProject]:
        """
        Get project details.

        Returns:
            The project, or None if it does not exist
        """
        pass

    @abstractmethod
    def deploy(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        options: Optional[DeployOptions] = None
    ) -> DeploymentResult:
        """
        Trigger a deployment.

        Returns:
            DeploymentResult; success=False with an error for any failure,
            including a project that does not exist
        """
        pass

    @abstractmethod
    def get_deployment_status(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str
    ) -> DeploymentStatusResult:
        """
        Poll a deployment.

        Returns:
            Snapshot whose status is always a canonical DeploymentStatus
        """
        pass

    @abstractmethod
    def get_deployment_logs(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str,
        cursor: Optional[str] = None
    ) -> DeploymentLogsResult:
        """
        Get one page of build logs.

        Args:
            cursor: Opaque cursor from a previous page's next_cursor
        """
        pass

    @abstractmethod
    def set_custom_domain(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str
    ) -> CustomDomainResult:
        """Attach a custom domain and return the DNS records to create"""
        pass

    @abstractmethod
    def remove_custom_domain(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str
    ) -> bool:
        """Detach a custom domain. Returns False on failure."""
        pass

    @abstractmethod
    def get_dns_instructions(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        domain: str
    ) -> List[DnsRecord]:
        """
        Get the DNS records a user must configure for a custom domain.

        Returns:
            Ordered list of DnsRecord
        """
        pass

    @abstractmethod
    def rollback(
        self,
        credentials: DeploymentCredentials,
        project_id: str,
        deployment_id: str
    ) -> DeploymentResult:
        """Restore a previous deployment as production"""
        pass

    @abstractmethod
    def delete_project(
        self,
        credentials: DeploymentCredentials,
        project_id: str
    ) -> bool:
        """Delete (or disable) the hosting project. Returns False on failure."""
        pass

    @abstractmethod
    def auto_setup_project(
        self,
        credentials: DeploymentCredentials,
        github_repo: GitHubRepository,
        config: AutoSetupConfig
    ) -> AutoSetupResult:
        """
        One-click setup after connecting a platform: pick a project name,
        reuse a project already linked to the same repository, configure
        Hugo build settings and return the production URL.

        Raises:
            APIError: On transport or authentication failures
        """
        pass

