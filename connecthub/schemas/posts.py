from datetime import datetime
from pydantic import BaseModel, model_validator
from typing import List, Optional
from .users import UserSummaryOut
from ..images import get_image_url

class PaginationOut(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool

class CommentIn(BaseModel):
    text: str

class CommentOut(BaseModel):
    id: int
    post_id: int
    text: str
    created_at: Optional[datetime] = None
    author: UserSummaryOut

    class Config:
        from_attributes = True

class PostOut(BaseModel):
    id: int
    text: str
    image: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    author: UserSummaryOut
    likes: List[int] = []
    comments_count: int = 0

    class Config:
        from_attributes = True

    @model_validator(mode='after')
    def fill_image_url(self):
        self.image_url = get_image_url(self.image)
        return self

class PostDetailOut(PostOut):
    comments: List[CommentOut] = []

class PostsPageOut(BaseModel):
    posts: List[PostOut]
    pagination: PaginationOut

class CommentsPageOut(BaseModel):
    comments: List[CommentOut]
    pagination: PaginationOut

class LikesOut(BaseModel):
    likes: List[int]
    likes_count: int

class UsersPageOut(BaseModel):
    users: List[UserSummaryOut]
    pagination: PaginationOut

class SearchOut(BaseModel):
    users: List[UserSummaryOut]
    posts: List[PostOut]
