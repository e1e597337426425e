from typing import Annotated

from fastapi import APIRouter, Depends

from src.marketplace.core.pbac import require_permission
from src.marketplace.models.core import User
from src.marketplace.schemas.user import UserResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def read_user_me(
    current_user: Annotated[User, Depends(require_permission("read", "users"))]
) -> User:
    """Get current user."""
    return current_user
