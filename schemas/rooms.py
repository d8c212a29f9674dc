from pydantic import BaseModel
from typing import Any, Optional


class OnlineUser(BaseModel):
    connection_id: str
    id: Optional[Any] = None
    name: Optional[str] = None
    email: str

class RoomDetailsResponse(BaseModel):
    room_id: str
    online_users_count: int
    online_users: list[OnlineUser]

class PresenceResponse(BaseModel):
    online_users: list[str]
    count: int

class ChatMessage(BaseModel):
    id: str
    room_id: str
    sender_id: Optional[Any] = None
    sender_email: Optional[str] = None
    content: Optional[str] = None
    created_at: Optional[str] = None

class RoomMessagesResponse(BaseModel):
    room_id: str
    messages: list[ChatMessage]
