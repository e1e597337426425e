from pydantic import BaseModel


class Token(BaseModel):
    """Token schema for authentication."""
    access_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    """Claims carried by an access token."""
    user_id: int
    uuid: str
    email: str
    role: str
