from fastapi import APIRouter

from dependencies import OptionalUser, Toggles
from models.user import FollowState

router = APIRouter()


@router.post("/{user_id}/follow", response_model=FollowState)
async def toggle_follow(toggles: Toggles, user_id: str, user: OptionalUser):
    """
    Follow 'user_id' as the signed-in user, or unfollow if already following.
    """
    return await toggles.toggle_follow(user.user_id if user else None, user_id)


@router.get("/{user_id}/follow")
async def get_follow_status(toggles: Toggles, user_id: str, user: OptionalUser):
    """Whether the signed-in user follows 'user_id'"""
    following = await toggles.is_following(user.user_id if user else None, user_id)
    return {"following": following}
