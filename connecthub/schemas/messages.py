from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional
from .users import UserSummaryOut

class ChatCreateIn(BaseModel):
    user_id: int

class MessageIn(BaseModel):
    text: str

class MessageOut(BaseModel):
    id: int
    chat_id: int
    text: str
    read: bool = False
    created_at: Optional[datetime] = None
    sender: UserSummaryOut

    class Config:
        from_attributes = True

class ChatOut(BaseModel):
    id: int
    participants: List[UserSummaryOut]
    messages: List[MessageOut] = []
    last_message: Optional[str] = None
    updated_at: Optional[datetime] = None

class ChatsOut(BaseModel):
    chats: List[ChatOut]

class ReadReceiptOut(BaseModel):
    chat_id: int
    marked_read: int
