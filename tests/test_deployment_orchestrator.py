"""
Tests for the deployment orchestrator.
Providers are replaced with mocks; no platform API is called.

Run:
    python -m pytest tests/test_deployment_orchestrator.py -v
"""

import pytest
from unittest.mock import MagicMock, patch

from sitedeploy.api.exceptions import AuthenticationError, NotFoundError, ServerError
from sitedeploy.models import (
    DeploymentCredentials,
    DeploymentPlatform,
    DeploymentProject,
    DeploymentResult,
    DeploymentStatus,
    DeploymentStatusResult,
    GitHubRepository,
    ProjectConfig,
    ProviderCapabilities
)
from sitedeploy.utils.config import Settings


def _capabilities(supports_oauth=True):
    return ProviderCapabilities(
        supports_preview_deployments=True,
        supports_custom_domains=True,
        supports_environment_variables=True,
        supports_rollback=True,
        supports_build_logs=True,
        supports_webhooks=True,
        supports_oauth=supports_oauth,
        max_custom_domains=50,
        build_timeout=900,
    )


def _orchestrator(provider=None):
    """Orchestrator whose registry hands out a single mock provider."""
    from sitedeploy.services.deployment_orchestrator import DeploymentOrchestrator

    provider = provider or MagicMock()
    provider.name = "Vercel"
    if not isinstance(provider.capabilities, ProviderCapabilities):
        provider.capabilities = _capabilities()

    registry = MagicMock()
    registry.get_provider.return_value = provider
    orchestrator = DeploymentOrchestrator(Settings(_env_file=None), registry=registry)
    return orchestrator, provider, registry


def _credentials(platform=DeploymentPlatform.VERCEL):
    return DeploymentCredentials(platform=platform, access_token="tok")


def _project():
    return DeploymentProject(
        id="prj_1", name="blog", platform=DeploymentPlatform.VERCEL, production_url="https://blog.vercel.app"
    )


class TestRouting:

    def test_routes_by_credentials_platform(self):
        orchestrator, provider, registry = _orchestrator()
        provider.get_project.return_value = _project()

        project = orchestrator.get_project(_credentials(), "prj_1")

        assert project.id == "prj_1"
        registry.get_provider.assert_called_once_with(DeploymentPlatform.VERCEL)
        provider.get_project.assert_called_once()

    def test_platform_mismatch_is_rejected(self):
        from sitedeploy.services.deployment_orchestrator import OrchestratorError

        orchestrator, provider, _ = _orchestrator()

        with pytest.raises(OrchestratorError) as exc_info:
            orchestrator.deploy(_credentials(), "prj_1", platform="netlify")

        assert "netlify" in str(exc_info.value)
        provider.deploy.assert_not_called()

    def test_matching_explicit_platform(self):
        orchestrator, provider, _ = _orchestrator()
        provider.deploy.return_value = DeploymentResult(success=True, deployment_id="dpl_1")

        result = orchestrator.deploy(_credentials(), "prj_1", platform="vercel")

        assert result.deployment_id == "dpl_1"

    def test_unknown_platform(self):
        from sitedeploy.services.deployment_orchestrator import DeploymentOrchestrator, OrchestratorError

        orchestrator = DeploymentOrchestrator(Settings(_env_file=None, http_retry_attempts=1))

        with pytest.raises(OrchestratorError):
            orchestrator.get_capabilities("heroku")

    def test_list_platforms(self):
        from sitedeploy.services.deployment_orchestrator import DeploymentOrchestrator

        orchestrator = DeploymentOrchestrator(Settings(_env_file=None))

        assert [info.platform for info in orchestrator.list_platforms()] == list(DeploymentPlatform)


class TestErrorHandling:

    def test_create_project_wraps_api_error(self):
        from sitedeploy.services.deployment_orchestrator import OrchestratorError

        orchestrator, provider, _ = _orchestrator()
        cause = AuthenticationError("Invalid token", status_code=401)
        provider.create_project.side_effect = cause
        config = ProjectConfig(name="blog", build_command="hugo", output_directory="public")

        with pytest.raises(OrchestratorError) as exc_info:
            orchestrator.create_project(_credentials(), config, "octo", "blog")

        assert exc_info.value.__cause__ is cause

    def test_deploy_error_becomes_failed_result(self):
        orchestrator, provider, _ = _orchestrator()
        provider.deploy.side_effect = ServerError("Vercel server error: boom", status_code=502)

        result = orchestrator.deploy(_credentials(), "prj_1")

        assert result.success is False
        assert result.error == "Vercel server error: boom"

    def test_status_error_becomes_failed_status(self):
        orchestrator, provider, _ = _orchestrator()
        provider.get_deployment_status.side_effect = NotFoundError("Deployment not found", status_code=404)

        status = orchestrator.get_deployment_status(_credentials(), "prj_1", "dpl_x")

        assert status.status == DeploymentStatus.FAILED
        assert status.error == "Deployment not found"

    def test_status_passes_through(self):
        orchestrator, provider, _ = _orchestrator()
        provider.get_deployment_status.return_value = DeploymentStatusResult(status=DeploymentStatus.BUILDING)

        status = orchestrator.get_deployment_status(_credentials(), "prj_1", "dpl_1")

        assert status.status == DeploymentStatus.BUILDING
        provider.get_deployment_status.assert_called_once_with(_credentials(), "prj_1", "dpl_1")

    def test_status_json_has_only_public_fields(self):
        status = DeploymentStatusResult(status=DeploymentStatus.SUCCESS, deployment_url="https://blog.vercel.app")

        assert status.to_json_dict() == {"status": "success", "deploymentUrl": "https://blog.vercel.app"}

    @patch("sitedeploy.api.base_provider.requests.request")
    def test_malformed_platform_response_becomes_failed_result(self, mock_request):
        from sitedeploy.services.deployment_orchestrator import DeploymentOrchestrator

        response = MagicMock()
        response.status_code = 200
        response.json.return_value = {"success": True, "errors": [], "result": None}
        response.content = b"{}"
        mock_request.return_value = response
        credentials = DeploymentCredentials(
            platform=DeploymentPlatform.CLOUDFLARE, access_token="cf_test", account_id="acc_1"
        )

        orchestrator = DeploymentOrchestrator(Settings(_env_file=None, http_retry_attempts=1))
        result = orchestrator.rollback(credentials, "blog", "dep_1")

        assert result.success is False
        assert "Unexpected CloudflareDeployment response" in result.error

    def test_logs_cursor_is_forwarded(self):
        orchestrator, provider, _ = _orchestrator()

        orchestrator.get_deployment_logs(_credentials(), "prj_1", "dpl_1", cursor="200")

        provider.get_deployment_logs.assert_called_once_with(_credentials(), "prj_1", "dpl_1", "200")

    def test_remove_domain_error_returns_false(self):
        orchestrator, provider, _ = _orchestrator()
        provider.remove_custom_domain.side_effect = ServerError("down", status_code=503)

        assert orchestrator.remove_custom_domain(_credentials(), "prj_1", "www.example.com") is False

    def test_set_domain_error_becomes_failed_result(self):
        orchestrator, provider, _ = _orchestrator()
        provider.set_custom_domain.side_effect = AuthenticationError("Forbidden", status_code=403)

        result = orchestrator.set_custom_domain(_credentials(), "prj_1", "www.example.com")

        assert result.success is False
        assert result.domain == "www.example.com"
        assert result.error == "Forbidden"

    def test_dns_instructions_invalid_domain(self):
        from sitedeploy.services.deployment_orchestrator import OrchestratorError
        from sitedeploy.utils.validators import ValidationError

        orchestrator, provider, _ = _orchestrator()
        provider.get_dns_instructions.side_effect = ValidationError("Invalid domain format: x")

        with pytest.raises(OrchestratorError):
            orchestrator.get_dns_instructions(_credentials(), "prj_1", "x")

    def test_auto_setup_defaults_config(self):
        from sitedeploy.models import AutoSetupConfig

        orchestrator, provider, _ = _orchestrator()
        repo = GitHubRepository(owner="octo", name="blog")

        orchestrator.auto_setup_project(_credentials(), repo)

        args = provider.auto_setup_project.call_args.args
        assert args[1] is repo
        assert args[2] == AutoSetupConfig()


class TestOAuth:

    def test_no_oauth_returns_none(self):
        provider = MagicMock()
        provider.capabilities = _capabilities(supports_oauth=False)
        orchestrator, provider, _ = _orchestrator(provider)

        assert orchestrator.get_authorization_url("github-pages", "https://app.test/cb", "state") is None
        provider.get_authorization_url.assert_not_called()

    def test_github_pages_has_no_oauth_flow(self):
        from sitedeploy.services.deployment_orchestrator import DeploymentOrchestrator

        orchestrator = DeploymentOrchestrator(Settings(_env_file=None))

        assert orchestrator.get_authorization_url("github-pages", "https://app.test/cb", "state") is None

    def test_authorization_url(self):
        orchestrator, provider, _ = _orchestrator()
        provider.get_authorization_url.return_value = "https://vercel.com/integrations/x/new?state=s"

        url = orchestrator.get_authorization_url("vercel", "https://app.test/cb", "s")

        assert url.endswith("state=s")
        provider.get_authorization_url.assert_called_once_with("https://app.test/cb", "s")

    def test_exchange_failure_raises(self):
        from sitedeploy.api.exceptions import OAuthConfigurationError
        from sitedeploy.services.deployment_orchestrator import OrchestratorError

        orchestrator, provider, _ = _orchestrator()
        provider.exchange_code_for_token.side_effect = OAuthConfigurationError("not configured")

        with pytest.raises(OrchestratorError):
            orchestrator.exchange_code_for_token("vercel", "code", "https://app.test/cb")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
