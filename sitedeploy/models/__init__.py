"""
Canonical data model
Plain pydantic models, safe to serialize straight into a JSON API response
"""

from sitedeploy.models.deployment import (
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
    DnsRecordType,
    GitHubRepository,
    PlatformInfo,
    ProjectConfig,
    ProviderCapabilities,
)

__all__ = [
    "AutoSetupConfig",
    "AutoSetupResult",
    "CustomDomainResult",
    "DeployOptions",
    "DeploymentCredentials",
    "DeploymentLogsResult",
    "DeploymentPlatform",
    "DeploymentProject",
    "DeploymentResult",
    "DeploymentStatus",
    "DeploymentStatusResult",
    "DnsRecord",
    "DnsRecordType",
    "GitHubRepository",
    "PlatformInfo",
    "ProjectConfig",
    "ProviderCapabilities",
]
