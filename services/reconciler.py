import logging
from typing import Tuple

from errors import NotFound
from services.firestore import FirestoreDB

logger = logging.getLogger(__name__)


class CounterReconciler:
    """
    Read-repair for the denormalized social counters.

    Each counter has exactly one function that recomputes it from the relationship
    records it caches. A counter is only written when it has drifted, so calling a
    reconcile twice in a row mutates at most once.
    """

    def __init__(self, db: FirestoreDB):
        self.db = db

    async def reconcile_like_count(self, post_id: str) -> int:
        """
        Recount the likes of a post and repair `likesCount` if it drifted

        Args:
            post_id: The ID of the post to reconcile

        Returns:
            The number of Like records referencing the post

        Raises:
            NotFound: If the post does not exist
            StoreFailure: If a store call fails
        """
        post = await self.db.get("posts", post_id)
        if post is None:
            raise NotFound("Post not found")

        actual = await self.db.count("likes", [("postId", "==", post_id)])
        cached = post.get("likesCount")
        if cached != actual:
            logger.info("Repairing likesCount of post %s: %s -> %s", post_id, cached, actual)
            await self.db.update("posts", post_id, {"likesCount": actual})
        return actual

    async def reconcile_follow_counts(self, uid: str) -> Tuple[int, int]:
        """
        Recount followers and following of a profile and repair both counters

        Returns:
            (followersCount, followingCount) as counted from Follow records
        """
        profile = await self.db.get("users", uid)
        if profile is None:
            raise NotFound("Profile not found")

        followers = await self.db.count("follows", [("followingId", "==", uid)])
        following = await self.db.count("follows", [("followerId", "==", uid)])

        repairs = {}
        if profile.get("followersCount") != followers:
            repairs["followersCount"] = followers
        if profile.get("followingCount") != following:
            repairs["followingCount"] = following

        if repairs:
            logger.info("Repairing follow counters of user %s: %s", uid, repairs)
            await self.db.update("users", uid, repairs)
        return followers, following
