"""Run one expiry sweep.

Intended for an external scheduler (cron, a k8s CronJob) that never overlaps runs:

    python -m src.marketplace.tasks.expire_subscriptions
"""
import asyncio
import logging
import sys

from src.marketplace.core.config import settings
from src.marketplace.crud import CRUDSubscription, CRUDUser
from src.marketplace.db.session import AsyncSessionLocal
from src.marketplace.models import Subscription, User
from src.marketplace.services.expiry_service import SubscriptionExpiryService
from src.marketplace.services.role_projection import RoleProjection

logger = logging.getLogger(__name__)


async def run_sweep() -> int:
    service = SubscriptionExpiryService(
        CRUDSubscription(Subscription),
        RoleProjection(CRUDUser(User)),
        expiring_soon_days=settings.EXPIRING_SOON_DAYS,
    )
    async with AsyncSessionLocal() as db:
        processed = await service.process_expired_subscriptions(db)
        await service.notify_expiring_soon(db)
    return processed


def main() -> None:
    try:
        processed = asyncio.run(run_sweep())
    except Exception as e:
        logger.error(f"Expiry sweep failed: {e}")
        sys.exit(1)
    logger.info(f"Expiry sweep finished, {processed} subscriptions expired")


if __name__ == "__main__":
    main()
