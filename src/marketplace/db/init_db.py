import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.core.security import hash_password
from src.marketplace.crud import CRUDPlan, CRUDUser
from src.marketplace.db.session import AsyncSessionLocal, engine
from src.marketplace.models import Base, SubscriptionPlan, User
from src.marketplace.schemas import PlanCreate, UserCreate, UserRole

logger = logging.getLogger(__name__)

SEED_DIR = Path(__file__).parent / "seed"


async def create_tables() -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def _create_plans(db: AsyncSession) -> None:
    """Create subscription plans from JSON seed files if they don't exist."""
    plans_dir = SEED_DIR / "plans"

    if not plans_dir.exists():
        logger.info("No plans seed directory found - skipping plan creation")
        return

    catalog = CRUDPlan(SubscriptionPlan)
    for plan_file in sorted(plans_dir.glob("*.json")):
        try:
            with open(plan_file, "r") as f:
                plan_in = PlanCreate(**json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error reading plan file {plan_file}: {str(e)}")
            continue

        if await catalog.get_by_name(db, name=plan_in.name):
            logger.info(f"Plan already exists: {plan_in.name} - skipping")
            continue

        await catalog.create_plan(db, obj_in=plan_in)


async def _create_users(db: AsyncSession) -> None:
    """Create users from JSON seed files if they don't exist.

    Each file holds a single role name as key with the user details as value.
    An optional `is_staff` flag in the details grants plan administration.
    """
    users_dir = SEED_DIR / "users"

    if not users_dir.exists():
        logger.info("No users seed directory found - skipping user creation")
        return

    users = CRUDUser(User)
    for user_file in users_dir.glob("*.json"):
        try:
            with open(user_file, "r") as f:
                user_data = json.load(f)

            if len(user_data) != 1:
                logger.warning(f"Invalid user data format in {user_file}, skipping")
                continue

            role_name = next(iter(user_data))
            role = UserRole(role_name)
            details = dict(user_data[role_name])
            is_staff = bool(details.pop("is_staff", False))
            user_in = UserCreate(**details)
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error reading user file {user_file}: {str(e)}")
            continue

        if await users.get_by_email(db, email=user_in.email):
            logger.info(f"User already exists: {user_in.email} - skipping")
            continue

        await users.create_with_password(
            db, obj_in=user_in, hashed_password=hash_password(user_in.password), role=role, is_staff=is_staff
        )
        logger.info(f"Created user {user_in.email} with role '{role.value}'")


async def init_db() -> None:
    """Create tables and load seed data."""
    await create_tables()
    async with AsyncSessionLocal() as db:
        try:
            await _create_plans(db)
            await _create_users(db)
            logger.info("Database initialization completed successfully")
        except Exception as e:
            logger.error(f"Database initialization failed: {str(e)}")
            await db.rollback()
            raise


def main() -> None:
    """Main function to run database initialization."""
    try:
        asyncio.run(init_db())
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
