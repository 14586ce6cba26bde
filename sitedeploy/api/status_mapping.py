"""
Status normalization
Maps each platform's build/deploy vocabulary onto DeploymentStatus.

Every function here is total: unknown or missing vendor states map to
PENDING so that polling loops keep going through transient vendor states.
"""

from typing import Optional

from sitedeploy.models import DeploymentStatus


CLOUDFLARE_STATUS_MAP = {
    "idle": DeploymentStatus.PENDING,
    "queued": DeploymentStatus.PENDING,
    "active": DeploymentStatus.BUILDING,
    "building": DeploymentStatus.BUILDING,
    "deploying": DeploymentStatus.DEPLOYING,
    "success": DeploymentStatus.SUCCESS,
    "failure": DeploymentStatus.FAILED,
    "canceled": DeploymentStatus.CANCELLED,
    "cancelled": DeploymentStatus.CANCELLED,
}

VERCEL_STATE_MAP = {
    "QUEUED": DeploymentStatus.PENDING,
    "INITIALIZING": DeploymentStatus.PENDING,
    "BUILDING": DeploymentStatus.BUILDING,
    "READY": DeploymentStatus.SUCCESS,
    "ERROR": DeploymentStatus.FAILED,
    "CANCELED": DeploymentStatus.CANCELLED,
}

NETLIFY_STATE_MAP = {
    "new": DeploymentStatus.PENDING,
    "pending": DeploymentStatus.PENDING,
    "uploading": DeploymentStatus.PENDING,
    "uploaded": DeploymentStatus.PENDING,
    "preparing": DeploymentStatus.PENDING,
    "enqueued": DeploymentStatus.BUILDING,
    "building": DeploymentStatus.BUILDING,
    "prepared": DeploymentStatus.DEPLOYING,
    "processing": DeploymentStatus.DEPLOYING,
    "processed": DeploymentStatus.DEPLOYING,
    "ready": DeploymentStatus.SUCCESS,
    "error": DeploymentStatus.FAILED,
    "rejected": DeploymentStatus.FAILED,
    "skipped": DeploymentStatus.CANCELLED,
    "cancelled": DeploymentStatus.CANCELLED,
    "canceled": DeploymentStatus.CANCELLED,
}

GITHUB_RUN_STATUS_MAP = {
    "queued": DeploymentStatus.PENDING,
    "waiting": DeploymentStatus.PENDING,
    "pending": DeploymentStatus.PENDING,
    "requested": DeploymentStatus.PENDING,
    "in_progress": DeploymentStatus.BUILDING,
}

GITHUB_RUN_CONCLUSION_MAP = {
    "success": DeploymentStatus.SUCCESS,
    "cancelled": DeploymentStatus.CANCELLED,
    "skipped": DeploymentStatus.CANCELLED,
}


def normalize_cloudflare_status(status: Optional[str]) -> DeploymentStatus:
    """Map a Cloudflare Pages latest_stage.status"""
    return CLOUDFLARE_STATUS_MAP.get((status or "").lower(), DeploymentStatus.PENDING)


def normalize_vercel_state(state: Optional[str]) -> DeploymentStatus:
    """Map a Vercel readyState/state"""
    return VERCEL_STATE_MAP.get((state or "").upper(), DeploymentStatus.PENDING)


def normalize_netlify_state(state: Optional[str]) -> DeploymentStatus:
    """Map a Netlify deploy state"""
    return NETLIFY_STATE_MAP.get((state or "").lower(), DeploymentStatus.PENDING)


def normalize_github_run(status: Optional[str], conclusion: Optional[str]) -> DeploymentStatus:
    """
    Map a GitHub Actions workflow run (status + conclusion).

    A completed run is judged by its conclusion; anything other than
    success/cancelled/skipped (failure, timed_out, action_required, ...)
    counts as failed.
    """
    status = (status or "").lower()
    if status == "completed":
        return GITHUB_RUN_CONCLUSION_MAP.get((conclusion or "").lower(), DeploymentStatus.FAILED)
    return GITHUB_RUN_STATUS_MAP.get(status, DeploymentStatus.PENDING)
