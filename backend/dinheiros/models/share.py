from typing import Optional

from pydantic import BaseModel, EmailStr

from dinheiros.models.common import UTCDateTime


class ShareCreate(BaseModel):
    email: EmailStr


class ShareResponse(BaseModel):
    id: int
    account_id: int
    shared_user_id: int
    shared_user_email: Optional[str] = None
    permission_level: str
    shared_at: Optional[UTCDateTime] = None

    class Config:
        from_attributes = True
