from fastapi import APIRouter

from dependencies import CurrentUser, OptionalUser, Posts, Toggles, Users
from models.user import BioUpdate, ProfileCreate, ProfilePage, UserProfile

router = APIRouter()


@router.post("", response_model=UserProfile, status_code=201)
async def create_profile(users: Users, profile: ProfileCreate, current_user: CurrentUser):
    """Create the profile of the signed-in user after signup"""
    return await users.create_profile(current_user.user_id, profile)


@router.patch("/me", response_model=UserProfile)
async def update_bio(users: Users, body: BioUpdate, current_user: CurrentUser):
    return await users.update_bio(current_user.user_id, body.bio)


@router.get("/{uid}", response_model=ProfilePage)
async def get_profile(users: Users, posts: Posts, toggles: Toggles, uid: str, user: OptionalUser):
    """
    Profile page: the profile, the posts the requester may see, and whether
    the requester follows this user.
    """
    requester_id = user.user_id if user else None
    profile = await users.get_profile(uid)
    visible = await posts.list_profile_posts(uid, requester_id)
    following = await toggles.is_following(requester_id, uid)
    return ProfilePage(profile=profile, posts=visible, isFollowing=following)
