import logging
from typing import Annotated, Optional

from fastapi import Request, Depends, HTTPException
from firebase_admin.auth import verify_id_token

from models.user import User
from services.posts import PostService
from services.toggles import ToggleEngine
from services.users import UsersService

logger = logging.getLogger(__name__)


def _verify_bearer(authorization: str) -> User:
    token = authorization.split("Bearer ")[1]
    try:
        # Verify the Firebase ID token
        decoded_token = verify_id_token(token, check_revoked=True, clock_skew_seconds=10)
        return User(
            user_id=decoded_token["uid"],
            email=decoded_token.get("email"),
        )
    except Exception as e:
        logger.info("Invalid authentication token: %s", e)
        raise HTTPException(
            status_code=401,
            detail=f"Invalid authentication token: {str(e)}"
        )


async def get_current_user(request: Request) -> User:
    """
    Verify Firebase ID token from Authorization header and return user info
    """
    authorization = request.headers.get("Authorization")
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header"
        )
    return _verify_bearer(authorization)


async def get_optional_user(request: Request) -> Optional[User]:
    """
    Like get_current_user, but anonymous requests resolve to None instead of 401.
    A token that is present but invalid is still rejected.
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header"
        )
    return _verify_bearer(authorization)


async def get_toggle_engine(request: Request) -> ToggleEngine:
    """Get like/follow toggle engine from app state"""
    return request.app.state.toggle_engine


async def get_post_service(request: Request) -> PostService:
    """Get post service from app state"""
    return request.app.state.post_service


async def get_users_service(request: Request) -> UsersService:
    """Get users service from app state"""
    return request.app.state.users_service


# Type annotations for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
Toggles = Annotated[ToggleEngine, Depends(get_toggle_engine)]
Posts = Annotated[PostService, Depends(get_post_service)]
Users = Annotated[UsersService, Depends(get_users_service)]
