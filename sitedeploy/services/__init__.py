"""
Business logic and service layer
"""

from sitedeploy.services.deployment_orchestrator import DeploymentOrchestrator, OrchestratorError

__all__ = [
    "DeploymentOrchestrator",
    "OrchestratorError",
]
