"""Password hashing and access token helpers."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt
from passlib.context import CryptContext

from src.marketplace.core.config import settings
from src.marketplace.schemas.auth import TokenPayload

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(payload: TokenPayload, expires_minutes: Optional[int] = None) -> str:
    """
    Issue a signed access token.

    Args:
        payload: Claims identifying the user
        expires_minutes: Lifetime override, defaults to JWT_EXPIRES_MINUTES

    Returns:
        Encoded JWT
    """
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.JWT_EXPIRES_MINUTES
    )
    claims: Dict[str, Any] = payload.model_dump()
    claims.update(sub=str(payload.user_id), exp=expire)
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    """Verify a token and return its claims. Raises jose.JWTError when invalid or expired."""
    claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    return TokenPayload(**claims)
