"""
Tests for the Vercel client.
All Vercel API calls are mocked.

Run:
    python -m pytest tests/test_vercel_client.py -v
"""

import pytest
from unittest.mock import patch, MagicMock


REQUEST = "sitedeploy.api.base_provider.requests.request"


def _response(status=200, json_data=None, text=""):
    """Build a mock requests.Response."""
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    if json_data is not None:
        resp.json.return_value = json_data
        resp.content = b"{}"
    else:
        resp.json.side_effect = ValueError("No JSON")
        resp.content = text.encode()
    return resp


def _client(**overrides):
    from sitedeploy.api.vercel_client import VercelClient
    from sitedeploy.utils.config import Settings
    return VercelClient(Settings(http_retry_attempts=1, **overrides))


def _credentials(team_id=None):
    from sitedeploy.models import DeploymentCredentials, DeploymentPlatform
    return DeploymentCredentials(platform=DeploymentPlatform.VERCEL, access_token="vc_test", team_id=team_id)


def _hugo_config(name="blog"):
    from sitedeploy.models import ProjectConfig
    return ProjectConfig(
        name=name,
        framework="hugo",
        build_command="hugo --gc --minify",
        output_directory="public",
        environment_variables={"HUGO_VERSION": "0.123.0"},
    )


def _call(mock_request, index):
    return mock_request.call_args_list[index].kwargs


LINKED_PROJECT = {
    "id": "prj_1",
    "name": "blog",
    "link": {"type": "github", "org": "octo", "repo": "blog", "productionBranch": "main"},
}


class TestCredentials:

    @patch(REQUEST)
    def test_valid_token(self, mock_request):
        mock_request.return_value = _response(json_data={"user": {"id": "u1", "username": "octo"}})

        assert _client().validate_credentials(_credentials()) is True
        assert _call(mock_request, 0)["url"] == "https://api.vercel.com/v2/user"

    @patch(REQUEST)
    def test_forbidden_token_returns_false(self, mock_request):
        mock_request.return_value = _response(403, {"error": {"code": "forbidden", "message": "Not authorized"}})

        assert _client().validate_credentials(_credentials()) is False

    @patch(REQUEST)
    def test_team_id_is_sent_as_query_parameter(self, mock_request):
        mock_request.return_value = _response(json_data={"user": {"id": "u1"}})

        _client().validate_credentials(_credentials(team_id="team_1"))

        assert _call(mock_request, 0)["params"] == {"teamId": "team_1"}


class TestProjects:

    @patch(REQUEST)
    def test_create_project_uses_vercel_app_url(self, mock_request):
        mock_request.return_value = _response(200, {"id": "prj_1", "name": "blog", "createdAt": 1714557600000})

        project = _client().create_project(_credentials(), _hugo_config(), "octo", "blog")

        assert project.id == "prj_1"
        assert project.production_url == "https://blog.vercel.app"
        assert project.created_at.year == 2024

        body = _call(mock_request, 0)["json"]
        assert body["framework"] == "hugo"
        assert body["gitRepository"] == {"type": "github", "repo": "octo/blog"}
        assert body["outputDirectory"] == "public"
        assert body["environmentVariables"] == [{
            "key": "HUGO_VERSION",
            "value": "0.123.0",
            "target": ["production", "preview", "development"],
            "type": "plain",
        }]

    @patch(REQUEST)
    def test_create_existing_project_updates_build_settings(self, mock_request):
        mock_request.side_effect = [
            _response(409, {"error": {"code": "conflict", "message": "Project already exists"}}),
            _response(json_data={"id": "prj_1", "name": "blog"}),
            _response(json_data={
                "id": "prj_1",
                "name": "blog",
                "targets": {"production": {
                    "url": "blog-abc.vercel.app",
                    "alias": ["blog.vercel.app", "www.example.com"],
                }},
            }),
        ]

        project = _client().create_project(_credentials(), _hugo_config(), "octo", "blog")

        assert project.production_url == "https://blog-abc.vercel.app"
        assert project.custom_domains == ["www.example.com"]
        patch_call = _call(mock_request, 2)
        assert patch_call["method"] == "PATCH"
        assert patch_call["url"].endswith("/v9/projects/prj_1")
        assert patch_call["json"]["buildCommand"] == "hugo --gc --minify"

    @patch(REQUEST)
    def test_get_missing_project_returns_none(self, mock_request):
        mock_request.return_value = _response(404, {"error": {"code": "not_found", "message": "Project not found"}})

        assert _client().get_project(_credentials(), "prj_missing") is None

    @patch(REQUEST)
    def test_get_project_raises_on_auth_error(self, mock_request):
        from sitedeploy.api.exceptions import AuthenticationError

        mock_request.return_value = _response(401, {"error": {"code": "forbidden", "message": "Invalid token"}})

        with pytest.raises(AuthenticationError):
            _client().get_project(_credentials(), "prj_1")


class TestDeploy:

    @patch(REQUEST)
    def test_html_body_on_deploy_is_failure(self, mock_request):
        mock_request.side_effect = [
            _response(json_data=LINKED_PROJECT),
            _response(text="<html>Service Unavailable</html>"),
        ]

        result = _client().deploy(_credentials(), "prj_1")

        assert result.success is False
        assert "Unexpected VercelDeployment response" in result.error

    @patch(REQUEST)
    def test_deploy_from_git_link(self, mock_request):
        from sitedeploy.models import DeployOptions

        mock_request.side_effect = [
            _response(json_data=LINKED_PROJECT),
            _response(json_data={"id": "dpl_1", "url": "blog-xyz.vercel.app", "readyState": "QUEUED"}),
        ]

        result = _client().deploy(_credentials(), "prj_1", DeployOptions(commit_sha="abc123"))

        assert result.success is True
        assert result.deployment_id == "dpl_1"
        assert result.deployment_url == "https://blog-xyz.vercel.app"
        assert result.preview_url == "https://blog-xyz.vercel.app"

        body = _call(mock_request, 1)["json"]
        assert body["gitSource"] == {
            "type": "github", "org": "octo", "repo": "blog", "ref": "main", "sha": "abc123"
        }
        assert "target" not in body

    @patch(REQUEST)
    def test_production_deploy(self, mock_request):
        from sitedeploy.models import DeployOptions

        mock_request.side_effect = [
            _response(json_data=LINKED_PROJECT),
            _response(json_data={"id": "dpl_2", "url": "blog-prod.vercel.app", "target": "production"}),
        ]

        result = _client().deploy(_credentials(), "prj_1", DeployOptions(is_production=True))

        assert _call(mock_request, 1)["json"]["target"] == "production"
        assert result.preview_url is None

    @patch(REQUEST)
    def test_unlinked_project_fails(self, mock_request):
        mock_request.return_value = _response(json_data={"id": "prj_1", "name": "blog"})

        result = _client().deploy(_credentials(), "prj_1")

        assert result.success is False
        assert "not linked" in result.error
        assert mock_request.call_count == 1

    @patch(REQUEST)
    def test_missing_project_fails(self, mock_request):
        mock_request.return_value = _response(404, {"error": {"code": "not_found", "message": "Project not found"}})

        result = _client().deploy(_credentials(), "prj_missing")

        assert result.success is False
        assert "not found" in result.error

    @patch(REQUEST)
    def test_status_ready_is_success(self, mock_request):
        from sitedeploy.models import DeploymentStatus

        mock_request.return_value = _response(json_data={
            "id": "dpl_1",
            "url": "blog-xyz.vercel.app",
            "readyState": "READY",
            "createdAt": 1714557600000,
            "ready": 1714557660000,
        })

        status = _client().get_deployment_status(_credentials(), "prj_1", "dpl_1")

        assert status.status == DeploymentStatus.SUCCESS
        assert status.deployment_url == "https://blog-xyz.vercel.app"
        assert (status.completed_at - status.created_at).total_seconds() == 60

    @patch(REQUEST)
    def test_status_error_state(self, mock_request):
        from sitedeploy.models import DeploymentStatus

        mock_request.return_value = _response(json_data={
            "id": "dpl_1", "state": "ERROR", "errorMessage": "Command \"hugo\" exited with 255"
        })

        status = _client().get_deployment_status(_credentials(), "prj_1", "dpl_1")

        assert status.status == DeploymentStatus.FAILED
        assert "exited with 255" in status.error

    @patch(REQUEST)
    def test_logs_cursor_is_last_event_plus_one(self, mock_request):
        mock_request.return_value = _response(json_data=[
            {"type": "stdout", "created": 1714557600000, "payload": {"text": "Cloning github.com/octo/blog"}},
            {"type": "delimiter", "created": 1714557601000, "payload": {}},
            {"type": "stdout", "created": 1714557602000, "text": "Building site"},
        ])

        logs = _client(log_page_size=3).get_deployment_logs(
            _credentials(), "prj_1", "dpl_1", cursor="1714557500000"
        )

        assert len(logs.logs) == 2
        assert logs.logs[0].endswith("Cloning github.com/octo/blog")
        assert logs.logs[0].startswith("[2024-05-01T10:00:00")
        assert logs.has_more is True
        assert logs.next_cursor == "1714557602001"
        assert _call(mock_request, 0)["params"] == {"limit": 3, "since": "1714557500000"}

    @patch(REQUEST)
    def test_short_page_has_no_more(self, mock_request):
        mock_request.return_value = _response(json_data=[
            {"type": "stdout", "created": 1714557600000, "text": "Done"},
        ])

        logs = _client(log_page_size=3).get_deployment_logs(_credentials(), "prj_1", "dpl_1")

        assert logs.logs[0].endswith("Done")
        assert logs.has_more is False
        assert logs.next_cursor == "1714557600001"

    @patch(REQUEST)
    def test_logs_without_new_events(self, mock_request):
        mock_request.return_value = _response(json_data=[])

        logs = _client().get_deployment_logs(_credentials(), "prj_1", "dpl_1")

        assert logs.logs == []
        assert logs.has_more is False
        assert logs.next_cursor is None

    @patch(REQUEST)
    def test_rollback_redeploys_previous_deployment(self, mock_request):
        mock_request.side_effect = [
            _response(json_data={"id": "dpl_old", "name": "blog"}),
            _response(json_data={"id": "dpl_new", "url": "blog-new.vercel.app"}),
        ]

        result = _client().rollback(_credentials(), "prj_1", "dpl_old")

        assert result.success is True
        assert result.deployment_id == "dpl_new"
        body = _call(mock_request, 1)["json"]
        assert body["deploymentId"] == "dpl_old"
        assert body["target"] == "production"


class TestDomains:

    @patch(REQUEST)
    def test_set_domain_returns_verification_records(self, mock_request):
        from sitedeploy.models import DnsRecordType

        mock_request.return_value = _response(json_data={
            "name": "example.com",
            "verified": False,
            "verification": [{
                "type": "TXT",
                "domain": "_vercel.example.com",
                "value": "vc-domain-verify=example.com,abc",
                "reason": "pending_domain_verification",
            }],
        })

        result = _client().set_custom_domain(_credentials(), "prj_1", "example.com")

        assert result.success is True
        assert result.verified is False
        assert result.dns_records[0].type == DnsRecordType.TXT
        assert result.dns_records[0].name == "_vercel.example.com"
        assert result.dns_records[1].type == DnsRecordType.A
        assert result.dns_records[1].value == "76.76.21.21"

    @patch(REQUEST)
    def test_remove_domain_failure_returns_false(self, mock_request):
        mock_request.return_value = _response(404, {"error": {"code": "not_found", "message": "Domain not found"}})

        assert _client().remove_custom_domain(_credentials(), "prj_1", "example.com") is False

    def test_dns_instructions_for_subdomain(self):
        records = _client().get_dns_instructions(_credentials(), "prj_1", "www.example.com")

        assert len(records) == 1
        assert records[0].name == "www"
        assert records[0].value == "cname.vercel-dns.com"


class TestOAuth:

    def test_authorization_url(self):
        url = _client(vercel_client_id="cid").get_authorization_url("https://app.test/callback", "st4te")

        assert url.startswith("https://vercel.com/integrations/new?")
        assert "client_id=cid" in url
        assert "state=st4te" in url

    def test_authorization_url_requires_client_id(self):
        from sitedeploy.api.exceptions import OAuthConfigurationError

        with pytest.raises(OAuthConfigurationError):
            _client(vercel_client_id="").get_authorization_url("https://app.test/callback", "s")

    @patch(REQUEST)
    def test_exchange_code(self, mock_request):
        mock_request.return_value = _response(json_data={"access_token": "vc_token"})

        token = _client(vercel_client_id="cid", vercel_client_secret="secret").exchange_code_for_token(
            "code123", "https://app.test/callback"
        )

        assert token == "vc_token"
        kwargs = _call(mock_request, 0)
        assert kwargs["url"] == "https://api.vercel.com/v2/oauth/access_token"
        assert kwargs["data"]["code"] == "code123"
        assert "Authorization" not in kwargs["headers"]


class TestAutoSetup:

    @patch(REQUEST)
    def test_reuses_project_linked_to_same_repo(self, mock_request):
        from sitedeploy.models import AutoSetupConfig, GitHubRepository

        mock_request.return_value = _response(json_data=LINKED_PROJECT)

        result = _client().auto_setup_project(
            _credentials(), GitHubRepository(owner="octo", name="Blog"), AutoSetupConfig()
        )

        assert result.project.id == "prj_1"
        assert result.webhook_configured is True
        assert mock_request.call_count == 1

    @patch(REQUEST)
    def test_name_taken_by_other_repo_gets_suffix(self, mock_request):
        from sitedeploy.models import AutoSetupConfig, GitHubRepository

        mock_request.side_effect = [
            _response(json_data={"id": "prj_other", "name": "blog", "link": {"org": "someone", "repo": "blog"}}),
            _response(404, {"error": {"code": "not_found", "message": "Project not found"}}),
            _response(json_data={
                "id": "prj_2",
                "name": "blog-1",
                "link": {"type": "github", "org": "octo", "repo": "blog"},
            }),
        ]

        result = _client().auto_setup_project(
            _credentials(), GitHubRepository(owner="octo", name="blog"), AutoSetupConfig(hugo_version="0.120.0")
        )

        assert result.project.name == "blog-1"
        assert result.deployment_url == "https://blog-1.vercel.app"
        assert result.webhook_configured is True

        assert _call(mock_request, 1)["url"].endswith("/v9/projects/blog-1")
        body = _call(mock_request, 2)["json"]
        assert body["name"] == "blog-1"
        assert body["buildCommand"] == "hugo --gc --minify"
        assert body["environmentVariables"][0]["value"] == "0.120.0"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
