"""
Policy manager for per-deployment scheduling rules.

Handles:
- Saving policies to JSON files
- Loading policies by deployment name
- Listing all deployments
- Deleting policies
- Picking the active policy from the environment (.env supported)
"""
import json
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from psy_scheduler import config
from psy_scheduler.logging_config import get_logger
from psy_scheduler.policy import DEFAULT_POLICY, SchedulingPolicy

logger = get_logger(__name__)


class PolicyManager:
    """Manages scheduling policy files."""

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize policy manager.

        Args:
            config_dir: Directory for storing policy files.
                       Defaults to 'data/policies' in the working directory.
        """
        if config_dir is None:
            config_dir = Path.cwd() / "data" / "policies"

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def _get_policy_path(self, deployment: str) -> Path:
        """Get file path for a deployment's policy."""
        # Sanitize name to prevent path traversal
        safe_name = deployment.replace("/", "_").replace("\\", "_").replace("..", "_")
        return self.config_dir / f"{safe_name}.json"

    def save_policy(self, deployment: str, policy: SchedulingPolicy) -> None:
        path = self._get_policy_path(deployment)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(
                policy.model_dump(mode='json'),
                f,
                indent=2,
                ensure_ascii=False
            )

    def load_policy(self, deployment: str) -> SchedulingPolicy:
        """
        Load a deployment's policy.

        Raises:
            FileNotFoundError: If no policy file exists for the deployment
            pydantic.ValidationError: If the stored policy is invalid
        """
        path = self._get_policy_path(deployment)

        if not path.exists():
            raise FileNotFoundError(
                f"Policy not found for deployment: {deployment}"
            )

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return SchedulingPolicy(**data)

    def policy_exists(self, deployment: str) -> bool:
        return self._get_policy_path(deployment).exists()

    def list_deployments(self) -> List[str]:
        """List all deployment names with stored policies."""
        return sorted(path.stem for path in self.config_dir.glob("*.json"))

    def delete_policy(self, deployment: str) -> None:
        """
        Delete a deployment's policy.

        Raises:
            FileNotFoundError: If policy doesn't exist
        """
        path = self._get_policy_path(deployment)

        if not path.exists():
            raise FileNotFoundError(
                f"Policy not found for deployment: {deployment}"
            )

        path.unlink()


def load_policy_from_env() -> SchedulingPolicy:
    """
    Resolve the active policy from SCHEDULER_POLICY_DIR / SCHEDULER_DEPLOYMENT.

    Falls back to the built-in defaults when no deployment is configured.

    Raises:
        FileNotFoundError: If a deployment is named but has no policy file
    """
    load_dotenv()

    deployment = os.getenv(config.ENV_DEPLOYMENT)
    if not deployment:
        return DEFAULT_POLICY

    manager = PolicyManager(config_dir=os.getenv(config.ENV_POLICY_DIR))
    policy = manager.load_policy(deployment)
    logger.info("policy_loaded", deployment=deployment, config_dir=str(manager.config_dir))
    return policy
