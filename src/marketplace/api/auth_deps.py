"""Authentication dependencies for FastAPI endpoints."""
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy import select
import logging

from src.marketplace.core.config import settings
from src.marketplace.core.security import decode_access_token
from src.marketplace.db.session import SessionDep
from src.marketplace.models.core import User

logger = logging.getLogger(__name__)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


async def get_current_user(
    db: SessionDep,
    token: str = Depends(oauth2_scheme),
) -> User:
    """Get the current authenticated user.

    The role is read from the database rather than the token, since subscription
    changes rewrite it after the token was issued.
    """
    try:
        payload = decode_access_token(token)
    except (JWTError, ValidationError) as e:
        logger.warning(f"Token rejected: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    stmt = select(User).where(User.id == payload.user_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()

    if not user:
        logger.error(f"Token valid but user {payload.user_id} not found in application database")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user


# Type aliases for dependencies
CurrentUser = Annotated[User, Depends(get_current_user)]
