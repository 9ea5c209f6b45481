import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import bleach

from errors import (
    InvalidRequest,
    NotFound,
    PartialCascadeFailure,
    StoreFailure,
    Unauthenticated,
    Unauthorized,
)
from models.post import Comment, Post, PostCreate, PostDetail, PostUpdate
from services.firestore import FirestoreDB
from services.reconciler import CounterReconciler
from services.toggles import ToggleEngine
from services.visibility import can_view, visible_posts

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _newest_first(posts: List[Post]) -> List[Post]:
    def created(post: Post) -> datetime:
        if post.createdAt is None:
            return _EPOCH
        if post.createdAt.tzinfo is None:
            return post.createdAt.replace(tzinfo=timezone.utc)
        return post.createdAt

    return sorted(posts, key=created, reverse=True)


class PostService:

    def __init__(self, db: FirestoreDB, reconciler: CounterReconciler, toggles: ToggleEngine):
        self.db = db
        self.reconciler = reconciler
        self.toggles = toggles

    async def _load_post(self, post_id: str) -> Post:
        data = await self.db.get("posts", post_id)
        if data is None:
            raise NotFound("Post not found")
        return Post(**data)

    async def _repair_likes(self, post: Post) -> Post:
        """Reconcile the post's like count, never failing the read on a store error"""
        try:
            post.likesCount = await self.reconciler.reconcile_like_count(post.id)
        except (StoreFailure, NotFound) as e:
            logger.warning("Skipping likes reconciliation for post %s: %s", post.id, e.detail)
        return post

    async def create_post(self, author_id: Optional[str], body: PostCreate) -> Post:
        """
        Publish a new post for the signed-in author

        Author name and avatar are copied from the author's profile so listings
        do not need a second lookup.
        """
        if not author_id:
            raise Unauthenticated("Please log in to publish")

        title = body.title.strip()
        content = body.content.strip()
        if not title or not content:
            raise InvalidRequest("Title and content are required")

        profile = await self.db.get("users", author_id)
        if profile is None:
            raise NotFound("Profile not found")

        data = {
            "authorId": author_id,
            "authorName": profile.get("name", ""),
            "avatar": profile.get("avatar", ""),
            "title": title,
            "content": content,
            "tags": [tag.strip() for tag in body.tags if tag.strip()],
            "createdAt": datetime.now(timezone.utc),
            "likesCount": 0,
            "isDraft": body.isDraft,
            "isPrivate": body.isPrivate,
        }
        post_id = await self.db.insert("posts", data)
        return Post(id=post_id, **data)

    async def get_post_detail(self, post_id: str, requester_id: Optional[str]) -> PostDetail:
        """
        Load a post with its comments and the requester's like state

        The visibility check runs before any likes or comments are read, so a
        denied request learns nothing about the post beyond its existence.
        """
        post = await self._load_post(post_id)
        if not can_view(post, requester_id):
            raise Unauthorized("This verse is private")

        post = await self._repair_likes(post)
        comments = await self.get_comments(post_id)
        user_has_liked = await self.toggles.has_liked(post_id, requester_id)

        return PostDetail(post=post, comments=comments, userHasLiked=user_has_liked)

    async def list_profile_posts(self, owner_id: str, requester_id: Optional[str]) -> List[Post]:
        """Posts of a profile as the requester may see them, newest first"""
        documents = await self.db.query("posts", [("authorId", "==", owner_id)])
        posts = [Post(**data) for data in documents]

        posts = visible_posts(posts, requester_id, owner_id)
        posts = await asyncio.gather(*(self._repair_likes(post) for post in posts))
        return _newest_first(list(posts))

    async def list_private_posts(self, user_id: Optional[str]) -> List[Post]:
        """The signed-in user's own private posts, newest first"""
        if not user_id:
            raise Unauthenticated("Please log in to see your private verses")

        documents = await self.db.query("posts", [
            ("authorId", "==", user_id),
            ("isPrivate", "==", True)
        ])
        return _newest_first([Post(**data) for data in documents])

    async def edit_post(self, post_id: str, requester_id: Optional[str], body: PostUpdate) -> Post:
        if not requester_id:
            raise Unauthenticated()

        post = await self._load_post(post_id)
        if post.authorId != requester_id:
            raise Unauthorized("Only the author can edit this post")

        title = body.title.strip()
        content = body.content.strip()
        if not title or not content:
            raise InvalidRequest("Title and content are required")

        fields = {
            "title": title,
            "content": content,
            "editedAt": datetime.now(timezone.utc),
        }
        await self.db.update("posts", post_id, fields)
        return post.model_copy(update=fields)

    async def _delete_each(self, collection: str, documents: List[dict]) -> int:
        await asyncio.gather(*(self.db.delete(collection, doc["id"]) for doc in documents))
        return len(documents)

    async def delete_post(self, post_id: str, requester_id: Optional[str]) -> Dict[str, int]:
        """
        Delete a post together with its likes and comments

        Likes, then comments, then the post itself. Deletions within a step run
        concurrently; the post is only deleted once both steps completed. There
        is no rollback: if a step fails, children already removed stay removed.

        Returns:
            How many likes and comments were removed

        Raises:
            Unauthenticated / Unauthorized / NotFound: Before anything is deleted
            StoreFailure: If the likes lookup fails, before anything is deleted
            PartialCascadeFailure: If a step fails once deletions started
        """
        if not requester_id:
            raise Unauthenticated()

        post = await self._load_post(post_id)
        if post.authorId != requester_id:
            raise Unauthorized("Only the author can delete this post")

        likes = await self.db.query("likes", [("postId", "==", post_id)])

        step = "likes"
        try:
            likes_removed = await self._delete_each("likes", likes)
            step = "comments"
            comments = await self.db.query("comments", [("postId", "==", post_id)])
            comments_removed = await self._delete_each("comments", comments)
            step = "post"
            await self.db.delete("posts", post_id)
        except StoreFailure as e:
            logger.error("Cascade delete of post %s failed at %s: %s", post_id, step, e.detail)
            raise PartialCascadeFailure(post_id, step, cause=e) from e

        logger.info(
            "Deleted post %s with %d likes and %d comments", post_id, likes_removed, comments_removed
        )
        return {"likes": likes_removed, "comments": comments_removed}

    async def reconcile_likes(self, post_id: str, requester_id: Optional[str]) -> int:
        """Recount a post's likes for a requester allowed to see the post"""
        post = await self._load_post(post_id)
        if not can_view(post, requester_id):
            raise Unauthorized("This verse is private")
        return await self.reconciler.reconcile_like_count(post_id)

    async def add_comment(self, post_id: str, user_id: Optional[str], content: str) -> Comment:
        """Add a comment to a post the user is allowed to see"""
        if not user_id:
            raise Unauthenticated("Please log in to comment")

        sanitized = bleach.clean(content, strip=True).strip()
        if not sanitized:
            raise InvalidRequest("Comment cannot be empty")

        post = await self._load_post(post_id)
        if not can_view(post, user_id):
            raise Unauthorized("This verse is private")

        profile = await self.db.get("users", user_id) or {}
        data = {
            "postId": post_id,
            "userId": user_id,
            "userName": profile.get("name") or "Anonymous",
            "userAvatar": profile.get("avatar") or "/placeholder.svg",
            "content": sanitized,
            "createdAt": datetime.now(timezone.utc),
        }
        comment_id = await self.db.insert("comments", data)
        return Comment(id=comment_id, **data)

    async def get_comments(self, post_id: str) -> List[Comment]:
        """Comments for a post, newest first"""
        documents = await self.db.query("comments", [("postId", "==", post_id)])
        comments = [Comment(**data) for data in documents]
        comments.sort(key=lambda c: c.createdAt.timestamp() if c.createdAt else 0, reverse=True)
        return comments
