from pydantic import BaseModel
from typing import Optional


class AdminLoginRequest(BaseModel):
    email: str
    password: str

class AdminInfo(BaseModel):
    id: str
    name: Optional[str] = None
    email: str

class AdminLoginResponse(BaseModel):
    token: str
    admin: AdminInfo

# name/email are optional so a missing field gets the 400 "Missing fields" answer rather than a 422
class CreateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None

class CreateUserResponse(BaseModel):
    msg: str
    name: str
    email: str
    password: str

class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None

class UserOut(BaseModel):
    id: str
    name: Optional[str] = None
    email: str
    role: Optional[str] = None
    created_at: Optional[str] = None
    last_seen: Optional[str] = None

class MessageResponse(BaseModel):
    msg: str
