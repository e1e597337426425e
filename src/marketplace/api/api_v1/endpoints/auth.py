from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from src.marketplace.api.deps import AuthServiceDep
from src.marketplace.db.session import SessionDep
from src.marketplace.schemas import Token, UserCreate, UserResponse

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: UserCreate,
    db: SessionDep,
    auth_service: AuthServiceDep,
):
    """Register a new customer with email and password.

    Raises:
        EmailAlreadyRegisteredError: If the email is taken (409)
    """
    return await auth_service.register(db, user_in=register_data)


@router.post("/login", response_model=Token)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: SessionDep,
    auth_service: AuthServiceDep,
) -> Token:
    """Exchange email and password for a bearer token."""
    user = await auth_service.authenticate(db, email=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.issue_token(user)
