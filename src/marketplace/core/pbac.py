import logging
import os
from pathlib import Path
from typing import Dict, List, Annotated

from fastapi import Depends, HTTPException, status
from pydantic import BaseModel
from yaml import YAMLError, safe_load

from src.marketplace.api.auth_deps import get_current_user
from src.marketplace.core.config import settings
from src.marketplace.models.core import User

logger = logging.getLogger(__name__)


# Load policies from YAML file
def load_policies() -> Dict:
    try:
        # Try multiple possible paths for policies.yaml
        possible_paths = [
            settings.POLICIES_PATH,  # Configured / current directory
            "/app/policies.yaml",  # Docker app directory
            str(Path(__file__).resolve().parents[3] / "policies.yaml"),  # Project root
        ]

        for path in possible_paths:
            if os.path.exists(path):
                logger.debug(f"Loading policies from: {path}")
                with open(path, "r") as f:
                    return safe_load(f) or {}

        logger.error(f"policies.yaml not found in any of these paths: {possible_paths}")
        return {}
    except (OSError, YAMLError) as e:
        logger.error(f"Failed to load policies: {e}")
        return {}


class Policy(BaseModel):
    roles: List[str]
    actions: List[str]
    resources: List[str]


def check_policy(user: User, action: str, resource: str) -> bool:
    """Check if the user's role may perform action on resource."""
    policies = load_policies()

    user_roles = user.policy_roles()
    logger.info(f"Checking policy for user {user.id} ({sorted(user_roles)}), action: {action}, resource: {resource}")

    for policy in policies.get("policies", []):
        policy_obj = Policy(**policy)

        # Check if user has required role
        if not user_roles.intersection(policy_obj.roles):
            continue

        # Check if action is allowed
        if action not in policy_obj.actions:
            continue

        # Check if resource is allowed (including wildcard "*")
        if "*" not in policy_obj.resources and resource not in policy_obj.resources:
            continue

        logger.info(f"Policy check passed for user {user.id}")
        return True

    logger.warning(f"No matching policy found for user {user.id}, action: {action}, resource: {resource}")
    return False


def require_permission(action: str, resource: str):
    """Dependency factory requiring a policy match for the current user."""
    async def permission_dependency(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if not check_policy(current_user, action, resource):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied"
            )
        return current_user

    return permission_dependency
