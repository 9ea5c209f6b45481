from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from models.post import Post


class User(BaseModel):
    user_id: str
    email: Optional[str] = None


class UserProfile(BaseModel):
    uid: str
    name: str = ""
    username: str = ""
    bio: str = ""
    avatar: str = ""
    followersCount: int = 0
    followingCount: int = 0
    createdAt: Optional[datetime] = None


class ProfileCreate(BaseModel):
    name: str
    username: str
    avatar: Optional[str] = None

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        # search relies on the stored username being lowercase
        return value.strip().lower()


class BioUpdate(BaseModel):
    bio: str


class Follow(BaseModel):
    id: Optional[str] = None
    followerId: str
    followingId: str
    createdAt: Optional[datetime] = None


class FollowState(BaseModel):
    following: bool
    followersCount: int


class ProfilePage(BaseModel):
    profile: UserProfile
    posts: List[Post] = []
    isFollowing: bool = False
