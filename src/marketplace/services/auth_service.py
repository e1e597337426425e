import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.core.exceptions import EmailAlreadyRegisteredError
from src.marketplace.core.security import create_access_token, hash_password, verify_password
from src.marketplace.crud.crud_user import CRUDUser
from src.marketplace.models.core import User
from src.marketplace.schemas import UserCreate
from src.marketplace.schemas.auth import Token, TokenPayload
from src.marketplace.schemas.enums import UserRole


class AuthService:
    def __init__(self, users: CRUDUser):
        self.users = users
        self.logger = logging.getLogger(__name__)

    async def register(self, db: AsyncSession, *, user_in: UserCreate) -> User:
        """Create a standard customer account.

        Raises:
            EmailAlreadyRegisteredError: If the email is taken
        """
        if await self.users.get_by_email(db, email=user_in.email):
            raise EmailAlreadyRegisteredError(user_in.email)

        try:
            user = await self.users.create_with_password(
                db,
                obj_in=user_in,
                hashed_password=hash_password(user_in.password),
                role=UserRole.CUSTOMER,
            )
        except IntegrityError:
            # Lost a race on the unique email index
            await db.rollback()
            raise EmailAlreadyRegisteredError(user_in.email)

        self.logger.info(f"Registered user {user.id} ({user.email})")
        return user

    async def authenticate(self, db: AsyncSession, *, email: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, None otherwise."""
        user = await self.users.get_by_email(db, email=email)
        if not user or not verify_password(password, user.hashed_password):
            self.logger.info(f"Failed login attempt for {email}")
            return None
        return user

    def issue_token(self, user: User) -> Token:
        """Issue a bearer token for the user.

        The role claim is informational only; authorization re-reads the role
        from the database on each request.
        """
        payload = TokenPayload(user_id=user.id, uuid=user.uuid, email=user.email, role=user.role)
        return Token(access_token=create_access_token(payload))
