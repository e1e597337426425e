"""Premium access dependencies for FastAPI endpoints."""
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.marketplace.api.auth_deps import CurrentUser
from src.marketplace.api.deps import AccessGateDep
from src.marketplace.core.config import settings
from src.marketplace.db.session import SessionDep
from src.marketplace.models.core import User
from src.marketplace.schemas.enums import UsageAction
from src.marketplace.services.access_gate import Denied

logger = logging.getLogger(__name__)

UPGRADE_URL = f"{settings.API_V1_STR}/subscriptions/plans"


async def require_premium(
    request: Request,
    db: SessionDep,
    current_user: CurrentUser,
    gate: AccessGateDep,
) -> User:
    """Allow the request only with premium access. The decision is kept on `request.state.access`."""
    decision = await gate.decide(db, current_user)
    request.state.access = decision

    if isinstance(decision, Denied):
        logger.info(f"Premium access denied for user {current_user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": "Premium subscription required to access this feature",
                "code": "PREMIUM_SUBSCRIPTION_REQUIRED",
                "upgrade_url": UPGRADE_URL,
            },
        )
    return current_user


PremiumUser = Annotated[User, Depends(require_premium)]


async def attach_access_info(
    request: Request,
    db: SessionDep,
    current_user: CurrentUser,
    gate: AccessGateDep,
) -> User:
    """Record the access decision on the request without blocking it."""
    decision = await gate.decide(db, current_user)
    request.state.access = decision
    request.state.access_info = gate.describe(decision)
    return current_user


def check_usage_limits(action: UsageAction):
    """Dependency factory rejecting the request once the plan limit for `action` is reached."""
    async def usage_dependency(
        db: SessionDep,
        current_user: PremiumUser,
        gate: AccessGateDep,
    ) -> User:
        if not await gate.within_usage_limit(db, current_user, action):
            logger.info(f"Usage limit reached for user {current_user.id}, action: {action.value}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "message": f"Usage limit reached for {action.value}",
                    "code": "USAGE_LIMIT_REACHED",
                    "upgrade_url": UPGRADE_URL,
                },
            )
        return current_user

    return usage_dependency

