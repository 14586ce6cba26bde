"""
Tests for vendor status normalization.

Run:
    python -m pytest tests/test_status_mapping.py -v
"""

import pytest

from sitedeploy.api.status_mapping import (
    normalize_cloudflare_status,
    normalize_github_run,
    normalize_netlify_state,
    normalize_vercel_state
)
from sitedeploy.models import DeploymentStatus


class TestCloudflare:

    @pytest.mark.parametrize("vendor, expected", [
        ("idle", DeploymentStatus.PENDING),
        ("queued", DeploymentStatus.PENDING),
        ("active", DeploymentStatus.BUILDING),
        ("building", DeploymentStatus.BUILDING),
        ("deploying", DeploymentStatus.DEPLOYING),
        ("success", DeploymentStatus.SUCCESS),
        ("failure", DeploymentStatus.FAILED),
        ("canceled", DeploymentStatus.CANCELLED),
        ("cancelled", DeploymentStatus.CANCELLED),
    ])
    def test_known_statuses(self, vendor, expected):
        assert normalize_cloudflare_status(vendor) == expected

    def test_unknown_is_pending(self):
        assert normalize_cloudflare_status("something-new") == DeploymentStatus.PENDING
        assert normalize_cloudflare_status(None) == DeploymentStatus.PENDING


class TestVercel:

    @pytest.mark.parametrize("vendor, expected", [
        ("QUEUED", DeploymentStatus.PENDING),
        ("INITIALIZING", DeploymentStatus.PENDING),
        ("BUILDING", DeploymentStatus.BUILDING),
        ("READY", DeploymentStatus.SUCCESS),
        ("ERROR", DeploymentStatus.FAILED),
        ("CANCELED", DeploymentStatus.CANCELLED),
    ])
    def test_known_states(self, vendor, expected):
        assert normalize_vercel_state(vendor) == expected

    def test_case_insensitive(self):
        assert normalize_vercel_state("ready") == DeploymentStatus.SUCCESS
        assert normalize_vercel_state("Building") == DeploymentStatus.BUILDING

    def test_unknown_is_pending(self):
        assert normalize_vercel_state("ARCHIVED") == DeploymentStatus.PENDING
        assert normalize_vercel_state(None) == DeploymentStatus.PENDING


class TestNetlify:

    @pytest.mark.parametrize("vendor, expected", [
        ("new", DeploymentStatus.PENDING),
        ("pending", DeploymentStatus.PENDING),
        ("uploading", DeploymentStatus.PENDING),
        ("uploaded", DeploymentStatus.PENDING),
        ("preparing", DeploymentStatus.PENDING),
        ("enqueued", DeploymentStatus.BUILDING),
        ("building", DeploymentStatus.BUILDING),
        ("prepared", DeploymentStatus.DEPLOYING),
        ("processing", DeploymentStatus.DEPLOYING),
        ("processed", DeploymentStatus.DEPLOYING),
        ("ready", DeploymentStatus.SUCCESS),
        ("error", DeploymentStatus.FAILED),
        ("rejected", DeploymentStatus.FAILED),
        ("skipped", DeploymentStatus.CANCELLED),
        ("cancelled", DeploymentStatus.CANCELLED),
        ("canceled", DeploymentStatus.CANCELLED),
    ])
    def test_known_states(self, vendor, expected):
        assert normalize_netlify_state(vendor) == expected

    def test_unknown_is_pending(self):
        assert normalize_netlify_state("retrying") == DeploymentStatus.PENDING
        assert normalize_netlify_state(None) == DeploymentStatus.PENDING


class TestGitHubRun:

    @pytest.mark.parametrize("status", ["queued", "waiting", "pending", "requested"])
    def test_not_started_is_pending(self, status):
        assert normalize_github_run(status, None) == DeploymentStatus.PENDING

    def test_in_progress(self):
        assert normalize_github_run("in_progress", None) == DeploymentStatus.BUILDING

    def test_unknown_status_is_pending(self):
        assert normalize_github_run("paused", None) == DeploymentStatus.PENDING
        assert normalize_github_run(None, None) == DeploymentStatus.PENDING

    @pytest.mark.parametrize("conclusion, expected", [
        ("success", DeploymentStatus.SUCCESS),
        ("cancelled", DeploymentStatus.CANCELLED),
        ("skipped", DeploymentStatus.CANCELLED),
    ])
    def test_completed_uses_conclusion(self, conclusion, expected):
        assert normalize_github_run("completed", conclusion) == expected

    @pytest.mark.parametrize("conclusion", ["failure", "timed_out", "action_required", "neutral", None])
    def test_other_conclusions_are_failures(self, conclusion):
        assert normalize_github_run("completed", conclusion) == DeploymentStatus.FAILED

    def test_terminal_states(self):
        assert DeploymentStatus.SUCCESS.is_terminal
        assert DeploymentStatus.CANCELLED.is_terminal
        assert not normalize_github_run("in_progress", None).is_terminal


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
