from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import List, Optional
from ..images import get_image_url

class RegisterIn(BaseModel):
    username: str = Field(min_length=3, max_length=150, pattern=r'^[A-Za-z0-9_.]+$')
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1, max_length=150)
    last_name: str = Field(min_length=1, max_length=150)
    interests: List[str] = []

class TokenOut(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    refresh_token: Optional[str] = None

class RefreshIn(BaseModel):
    refresh_token: str

class UserSummaryOut(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str
    bio: Optional[str] = None
    interests: List[str] = []
    profile_picture: Optional[str] = None
    profile_picture_url: Optional[str] = None

    class Config:
        from_attributes = True

    @model_validator(mode='after')
    def fill_picture_url(self):
        self.profile_picture_url = get_image_url(self.profile_picture)
        return self

class UserOut(UserSummaryOut):
    email: EmailStr
    created_at: Optional[datetime] = None

class ProfileOut(UserSummaryOut):
    created_at: Optional[datetime] = None
    friends_count: int = 0
    posts_count: int = 0

class ProfileUpdateIn(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    interests: Optional[List[str]] = None

class ActionOkOut(BaseModel):
    ok: bool = True
    message: Optional[str] = None
