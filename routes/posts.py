from typing import Any, Dict, List

from fastapi import APIRouter

from dependencies import CurrentUser, OptionalUser, Posts, Toggles
from models.post import CommentRequest, Comment, LikeState, Post, PostCreate, PostDetail, PostUpdate

router = APIRouter()


@router.post("", response_model=Post, status_code=201)
async def create_post(posts: Posts, post_data: PostCreate, current_user: CurrentUser):
    """Publish a new verse"""
    return await posts.create_post(current_user.user_id, post_data)


@router.get("/private", response_model=List[Post])
async def get_private_posts(posts: Posts, current_user: CurrentUser):
    """The signed-in user's private verses"""
    return await posts.list_private_posts(current_user.user_id)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(posts: Posts, post_id: str, user: OptionalUser):
    """Get a post with its comments and the requester's like status"""
    return await posts.get_post_detail(post_id, user.user_id if user else None)


@router.patch("/{post_id}", response_model=Post)
async def edit_post(posts: Posts, post_id: str, post_data: PostUpdate, current_user: CurrentUser):
    return await posts.edit_post(post_id, current_user.user_id, post_data)


@router.delete("/{post_id}")
async def delete_post(posts: Posts, post_id: str, current_user: CurrentUser) -> Dict[str, Any]:
    """Delete a post along with its likes and comments"""
    removed = await posts.delete_post(post_id, current_user.user_id)
    return {"message": "Post deleted", "id": post_id, "removed": removed}


@router.post("/{post_id}/like", response_model=LikeState)
async def toggle_like(toggles: Toggles, post_id: str, user: OptionalUser):
    """Toggle like status for a post"""
    return await toggles.toggle_like(post_id, user.user_id if user else None)


@router.post("/{post_id}/comment", response_model=Comment, status_code=201)
async def add_comment(posts: Posts, post_id: str, comment: CommentRequest, user: OptionalUser):
    """Add a comment to a post"""
    return await posts.add_comment(post_id, user.user_id if user else None, comment.content)


@router.post("/{post_id}/reconcile")
async def reconcile_likes(posts: Posts, post_id: str, user: OptionalUser) -> Dict[str, Any]:
    """Recount a post's likes and repair its cached counter"""
    likes_count = await posts.reconcile_likes(post_id, user.user_id if user else None)
    return {"id": post_id, "likesCount": likes_count}
