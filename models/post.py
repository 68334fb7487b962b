from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

MAX_POST_TEXT = 500
MAX_COMMENT_TEXT = 200


class AccountRef(BaseModel):
    id: str
    username: str


class Like(BaseModel):
    account_id: str
    username: str


class Comment(BaseModel):
    id: str
    account: AccountRef
    username: str
    text: str
    created_at: datetime


class Post(BaseModel):
    id: str
    author: AccountRef
    text: Optional[str] = None
    image: Optional[str] = None
    likes: List[Like] = []
    comments: List[Comment] = []
    created_at: datetime
    updated_at: datetime


class PostCreate(BaseModel):
    text: Optional[str] = None
    image: Optional[str] = None


class CommentRequest(BaseModel):
    text: Optional[str] = None
