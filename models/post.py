from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator


class Post(BaseModel):
    id: Optional[str] = None
    authorId: str
    authorName: str = ""
    avatar: str = ""
    title: str = ""
    content: str = ""
    tags: List[str] = []
    likesCount: int = 0
    isPrivate: bool = False
    isDraft: bool = False
    createdAt: Optional[datetime] = None
    editedAt: Optional[datetime] = None

    @field_validator("isPrivate", "isDraft", mode="before")
    @classmethod
    def missing_flag_is_false(cls, value):
        # documents written before the flag existed store nothing (or null)
        return False if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def missing_tags_are_empty(cls, value):
        return [] if value is None else value


class PostCreate(BaseModel):
    title: str
    content: str
    tags: List[str] = []
    isPrivate: bool = False
    isDraft: bool = False


class PostUpdate(BaseModel):
    title: str
    content: str


class Like(BaseModel):
    id: Optional[str] = None
    postId: str
    userId: str
    createdAt: Optional[datetime] = None


class Comment(BaseModel):
    id: Optional[str] = None
    postId: str
    userId: str
    userName: str = "Anonymous"
    userAvatar: str = "/placeholder.svg"
    content: str
    createdAt: Optional[datetime] = None


class CommentRequest(BaseModel):
    content: str


class LikeState(BaseModel):
    liked: bool
    likesCount: int


class PostDetail(BaseModel):
    post: Post
    comments: List[Comment] = []
    userHasLiked: bool = False
