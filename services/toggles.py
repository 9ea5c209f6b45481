import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from errors import InvalidRequest, NotFound, Unauthenticated, Unauthorized
from models.post import Like, LikeState, Post
from models.user import Follow, FollowState
from services.firestore import FirestoreDB
from services.visibility import can_view

logger = logging.getLogger(__name__)


class ToggleEngine:
    """
    Like/unlike and follow/unfollow as presence-driven state transitions.

    The current state is read from the relationship records, never from a
    cached flag. Counters move by atomic deltas, so concurrent toggles by
    different users never lose each other's updates. The existence check and
    the delta are not one transaction: a double submit from the same user can
    briefly leave a duplicate record, which the next toggle removes and the
    CounterReconciler corrects.
    """

    def __init__(self, db: FirestoreDB):
        self.db = db

    async def has_liked(self, post_id: str, user_id: Optional[str]) -> bool:
        """Check if a specific user has liked a post"""
        if not user_id:
            return False
        likes = await self.db.query("likes", [("postId", "==", post_id), ("userId", "==", user_id)])
        return len(likes) > 0

    async def is_following(self, follower_id: Optional[str], following_id: str) -> bool:
        if not follower_id or follower_id == following_id:
            return False
        follows = await self.db.query(
            "follows", [("followerId", "==", follower_id), ("followingId", "==", following_id)]
        )
        return len(follows) > 0

    async def toggle_like(self, post_id: str, user_id: Optional[str]) -> LikeState:
        """
        Toggle a user's like on a post

        Args:
            post_id: The ID of the post
            user_id: The signed-in user, or None for anonymous requests

        Returns:
            The new like state and the post's like count after the delta

        Raises:
            Unauthenticated: If there is no signed-in user
            InvalidRequest: If the post ID is missing
            NotFound: If the post does not exist
            Unauthorized: If the post is private and not the user's own
            StoreFailure: If a store call fails
        """
        if not user_id:
            raise Unauthenticated("Please log in to like posts")
        if not post_id:
            raise InvalidRequest("Post ID is required")

        data = await self.db.get("posts", post_id)
        if data is None:
            raise NotFound("Post not found")
        if not can_view(Post(**data), user_id):
            raise Unauthorized("This verse is private")

        likes = await self.db.query("likes", [("postId", "==", post_id), ("userId", "==", user_id)])

        if likes:
            # remove every match so an earlier double insert is cleaned up too
            await asyncio.gather(*(self.db.delete("likes", like["id"]) for like in likes))
            await self.db.increment("posts", post_id, "likesCount", -1)
            liked = False
            if len(likes) > 1:
                logger.info("Removed %d duplicate likes on post %s by %s", len(likes), post_id, user_id)
        else:
            like = Like(postId=post_id, userId=user_id, createdAt=datetime.now(timezone.utc))
            await self.db.insert("likes", like.model_dump(exclude={"id"}))
            await self.db.increment("posts", post_id, "likesCount", 1)
            liked = True

        post = await self.db.get("posts", post_id)
        likes_count = post.get("likesCount", 0) if post else 0
        return LikeState(liked=liked, likesCount=max(0, likes_count))

    async def toggle_follow(self, follower_id: Optional[str], following_id: str) -> FollowState:
        """
        Toggle whether `follower_id` follows `following_id`

        The target's followersCount and the actor's followingCount move together.

        Raises:
            Unauthenticated: If there is no signed-in user
            InvalidRequest: If the target ID is missing or is the actor
            NotFound: If either profile does not exist
            StoreFailure: If a store call fails
        """
        if not follower_id:
            raise Unauthenticated("Please log in to follow users")
        if not following_id:
            raise InvalidRequest("Target user ID is required")
        if follower_id == following_id:
            raise InvalidRequest("Cannot follow yourself")

        if await self.db.get("users", following_id) is None:
            raise NotFound("Target user not found")
        if await self.db.get("users", follower_id) is None:
            raise NotFound("User not found")

        follows = await self.db.query(
            "follows", [("followerId", "==", follower_id), ("followingId", "==", following_id)]
        )

        if follows:
            await asyncio.gather(*(self.db.delete("follows", follow["id"]) for follow in follows))
            delta = -1
            following = False
        else:
            follow = Follow(followerId=follower_id, followingId=following_id, createdAt=datetime.now(timezone.utc))
            await self.db.insert("follows", follow.model_dump(exclude={"id"}))
            delta = 1
            following = True

        await self.db.increment("users", following_id, "followersCount", delta)
        await self.db.increment("users", follower_id, "followingCount", delta)

        target = await self.db.get("users", following_id)
        followers_count = target.get("followersCount", 0) if target else 0
        return FollowState(following=following, followersCount=max(0, followers_count))
