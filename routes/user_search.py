# routes/user_search.py
import logging

from fastapi import APIRouter, Query

from dependencies import Users
from errors import StoreFailure

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/search", tags=["user search"])
async def search_users(users: Users, q: str = Query("")):
    """
    Search for users by username prefix.
    """
    try:
        results = await users.search_by_username_prefix(q)
    except StoreFailure as e:
        logger.warning("User search for %r failed: %s", q, e.detail)
        return {"results": []}
    return {"results": [profile.model_dump() for profile in results]}
