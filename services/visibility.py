from typing import Iterable, List, Optional

from models.post import Post


def can_view(post: Post, requester_id: Optional[str]) -> bool:
    """
    Private posts are visible only to their author; everything else is visible
    to anyone, anonymous requesters (None) included.
    """
    if post.isPrivate:
        return requester_id is not None and requester_id == post.authorId
    return True


def visible_posts(posts: Iterable[Post], requester_id: Optional[str], owner_id: str) -> List[Post]:
    """
    Filter a profile's post listing for the requester.

    Private posts stay in the listing only when the requester owns the profile.
    """
    is_owner = requester_id is not None and requester_id == owner_id
    return [post for post in posts if not post.isPrivate or is_owner]
