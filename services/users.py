import logging
from datetime import datetime, timezone
from typing import List, Optional

from errors import InvalidRequest, NotFound, StoreFailure, Unauthenticated
from models.user import ProfileCreate, UserProfile
from services.firestore import FirestoreDB
from services.reconciler import CounterReconciler

logger = logging.getLogger(__name__)

# highest code point in Firestore's string ordering that clients use as a prefix bound
HIGH_SENTINEL = "\uf8ff"


def _to_profile(data: dict) -> UserProfile:
    data = dict(data)
    data.setdefault("uid", data.get("id"))
    return UserProfile(**data)


class UsersService:

    def __init__(self, db: FirestoreDB, reconciler: CounterReconciler):
        self.db = db
        self.reconciler = reconciler

    async def search_by_username_prefix(self, prefix: str) -> List[UserProfile]:
        """
        Find every profile whose username starts with `prefix`.

        Usernames are stored lowercased, so the query is lowercased too. The lookup
        is the half-open range [prefix, prefix + HIGH_SENTINEL) over `username`,
        returned in one batch ordered by username. A blank prefix returns nothing
        without querying, since it would scan the whole collection.
        """
        normalized = (prefix or "").strip().lower()
        if not normalized:
            return []

        documents = await self.db.query(
            "users",
            [
                ("username", ">=", normalized),
                ("username", "<", normalized + HIGH_SENTINEL),
            ],
            order_by="username"
        )
        return [_to_profile(data) for data in documents]

    async def create_profile(self, uid: Optional[str], body: ProfileCreate) -> UserProfile:
        """Create the profile document of a freshly signed-up user"""
        if not uid:
            raise Unauthenticated()
        if not body.username:
            raise InvalidRequest("Username is required")

        data = {
            "uid": uid,
            "name": body.name.strip(),
            "username": body.username,
            "bio": "",
            "avatar": body.avatar or f"https://api.dicebear.com/7.x/avataaars/svg?seed={body.username}",
            "followersCount": 0,
            "followingCount": 0,
            "createdAt": datetime.now(timezone.utc),
        }
        await self.db.set("users", uid, data)
        return UserProfile(**data)

    async def get_profile(self, uid: str) -> UserProfile:
        """
        Load a profile, repairing its follow counters on the way.

        A failed repair is logged and the cached counters are returned instead.
        """
        data = await self.db.get("users", uid)
        if data is None:
            raise NotFound("Profile not found")
        profile = _to_profile(data)

        try:
            followers, following = await self.reconciler.reconcile_follow_counts(uid)
            profile.followersCount = followers
            profile.followingCount = following
        except StoreFailure as e:
            logger.warning("Skipping follow reconciliation for user %s: %s", uid, e.detail)

        return profile

    async def update_bio(self, uid: Optional[str], bio: str) -> UserProfile:
        if not uid:
            raise Unauthenticated()

        data = await self.db.get("users", uid)
        if data is None:
            raise NotFound("Profile not found")

        await self.db.update("users", uid, {"bio": bio})
        data["bio"] = bio
        return _to_profile(data)
