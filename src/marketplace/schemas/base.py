from typing import Optional

from pydantic import BaseModel, ConfigDict
from datetime import datetime


# Properties to return to client
# out
class BaseSchema(BaseModel):
    """Base schema with common fields."""
    model_config = ConfigDict(from_attributes=True)


class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""
    created_at: datetime
    updated_at: datetime


class IDSchema(BaseSchema):
    """Schema with internal and external identifiers."""
    id: int
    uuid: str


class BaseResponseSchema(TimestampSchema, IDSchema):
    """Base response schema with ID and timestamp fields."""
    pass


class MessageResponse(BaseSchema):
    """Envelope used by endpoints that answer with a status message."""
    status: str = "success"
    message: Optional[str] = None
