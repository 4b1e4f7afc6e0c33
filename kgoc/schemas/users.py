from typing import Optional

from pydantic import BaseModel


class RoleAssignRequest(BaseModel):
    role: str


class UserRegisterRequest(BaseModel):
    email: str
    displayName: Optional[str] = None
    photoURL: Optional[str] = None
    provider: Optional[str] = None


class ActivityRequest(BaseModel):
    action: str
    description: Optional[str] = None
    module: Optional[str] = None
