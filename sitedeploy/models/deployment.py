"""Canonical deployment data models shared by every platform adapter."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DeploymentPlatform(str, Enum):
    """Supported hosting platforms."""

    GITHUB_PAGES = "github-pages"
    VERCEL = "vercel"
    NETLIFY = "netlify"
    CLOUDFLARE = "cloudflare"


class DeploymentStatus(str, Enum):
    """Canonical deployment state machine."""

    PENDING = "pending"
    BUILDING = "building"
    DEPLOYING = "deploying"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStatus.SUCCESS, DeploymentStatus.FAILED, DeploymentStatus.CANCELLED)


class DnsRecordType(str, Enum):
    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    TXT = "TXT"


class CanonicalModel(BaseModel):
    """Base model: snake_case in Python, camelCase when dumped by alias."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class DeploymentCredentials(CanonicalModel):
    """Per-call platform credentials. Never persisted by this package."""

    platform: DeploymentPlatform
    access_token: Optional[str] = Field(default=None, repr=False)
    team_id: Optional[str] = None
    account_id: Optional[str] = None


class DeploymentProject(CanonicalModel):
    id: str
    name: str
    platform: DeploymentPlatform
    production_url: str
    custom_domains: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("custom_domains")
    @classmethod
    def dedupe_domains(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(d for d in v if d))


class DeploymentResult(CanonicalModel):
    success: bool
    deployment_id: Optional[str] = None
    deployment_url: Optional[str] = None
    preview_url: Optional[str] = None
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)


class DeploymentStatusResult(CanonicalModel):
    status: DeploymentStatus
    deployment_url: Optional[str] = None
    preview_url: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class DeploymentLogsResult(CanonicalModel):
    logs: List[str] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[str] = None


class DnsRecord(CanonicalModel):
    type: DnsRecordType
    name: str
    value: str
    ttl: Optional[int] = None


class CustomDomainResult(CanonicalModel):
    success: bool
    domain: Optional[str] = None
    configured: bool = False
    verified: bool = False
    dns_records: List[DnsRecord] = Field(default_factory=list)
    error: Optional[str] = None


class ProjectConfig(CanonicalModel):
    name: str
    framework: Literal["hugo", "other"] = "hugo"
    build_command: str
    output_directory: str
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    root_directory: Optional[str] = None
    production_branch: str = "main"


class AutoSetupConfig(CanonicalModel):
    framework: Literal["hugo", "other"] = "hugo"
    hugo_version: Optional[str] = None


class GitHubRepository(CanonicalModel):
    owner: str
    name: str
    default_branch: str = "main"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class AutoSetupResult(CanonicalModel):
    project: DeploymentProject
    deployment_url: str
    webhook_configured: bool


class DeployOptions(CanonicalModel):
    branch: Optional[str] = None
    commit_sha: Optional[str] = None
    is_production: bool = False


class ProviderCapabilities(CanonicalModel):
    """Static per-platform descriptor, fixed at adapter construction."""

    model_config = ConfigDict(frozen=True)

    supports_preview_deployments: bool
    supports_custom_domains: bool
    supports_environment_variables: bool
    supports_rollback: bool
    supports_build_logs: bool
    supports_webhooks: bool
    supports_oauth: bool
    max_custom_domains: int
    build_timeout: int  # seconds


class PlatformInfo(CanonicalModel):
    platform: DeploymentPlatform
    name: str
    description: str
    icon: str
    docs_url: str
