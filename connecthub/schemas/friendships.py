from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional
from .users import UserSummaryOut

class FriendRequestIn(BaseModel):
    # optional so a missing id is reported as 400, not a schema error
    to_user_id: Optional[int] = None

class FriendRequestActionIn(BaseModel):
    action: Optional[str] = None

class FriendRequestOut(BaseModel):
    id: int
    from_user: int
    to_user: int
    status: str
    created_at: Optional[datetime] = None
    sender: Optional[UserSummaryOut] = None
    recipient: Optional[UserSummaryOut] = None

    class Config:
        from_attributes = True

class FriendRequestsOut(BaseModel):
    requests: List[FriendRequestOut]

class SuggestionOut(UserSummaryOut):
    common_interests: List[str]
    similarity_score: int

class SuggestionsOut(BaseModel):
    suggestions: List[SuggestionOut]
    total_suggestions: int

class FriendsOut(BaseModel):
    friends: List[UserSummaryOut]
