# tests/test_toggles.py
import asyncio

import pytest

from errors import InvalidRequest, NotFound, StoreFailure, Unauthenticated, Unauthorized
from tests.conftest import make_post, make_profile


@pytest.mark.asyncio
async def test_like_then_unlike_restores_count(store, toggles) -> None:
    """Two toggles in a row from a clean state: liked, then unliked, count back where it was."""
    make_post(store, "p1", "alice", likesCount=3)

    first = await toggles.toggle_like("p1", "bob")
    assert first.liked is True
    assert first.likesCount == 4
    assert await toggles.has_liked("p1", "bob")

    second = await toggles.toggle_like("p1", "bob")
    assert second.liked is False
    assert second.likesCount == 3
    assert store.docs("posts")["p1"]["likesCount"] == 3
    assert store.docs("likes") == {}


@pytest.mark.asyncio
async def test_unlike_removes_duplicate_likes_and_decrements_once(store, toggles) -> None:
    """A prior race left two likes for one user; one toggle removes both and decrements by one."""
    make_post(store, "p1", "alice", likesCount=2)
    store.seed("likes", "l1", {"postId": "p1", "userId": "bob"})
    store.seed("likes", "l2", {"postId": "p1", "userId": "bob"})

    state = await toggles.toggle_like("p1", "bob")

    assert state.liked is False
    assert store.docs("posts")["p1"]["likesCount"] == 1
    assert store.docs("likes") == {}


@pytest.mark.asyncio
async def test_likes_from_different_users_do_not_lose_updates(store, toggles) -> None:
    make_post(store, "p1", "alice")

    await asyncio.gather(*(toggles.toggle_like("p1", f"user{i}") for i in range(5)))

    assert store.docs("posts")["p1"]["likesCount"] == 5
    assert len(store.docs("likes")) == 5


@pytest.mark.asyncio
async def test_double_submit_from_same_user_can_duplicate_until_reconciled(store, toggles, reconciler) -> None:
    """Both taps see 'not liked' and insert; the counter overshoots until read-repair."""
    make_post(store, "p1", "alice")

    await asyncio.gather(toggles.toggle_like("p1", "bob"), toggles.toggle_like("p1", "bob"))

    assert len(store.docs("likes")) == 2
    assert store.docs("posts")["p1"]["likesCount"] == 2
    assert await reconciler.reconcile_like_count("p1") == 2

    # the next toggle converges to unliked
    state = await toggles.toggle_like("p1", "bob")
    assert state.liked is False
    assert store.docs("likes") == {}
    assert await reconciler.reconcile_like_count("p1") == 0
    assert store.docs("posts")["p1"]["likesCount"] == 0


@pytest.mark.asyncio
async def test_reported_count_is_floored_but_stored_value_is_not(store, toggles) -> None:
    make_post(store, "p1", "alice", likesCount=0)
    store.seed("likes", "l1", {"postId": "p1", "userId": "bob"})

    state = await toggles.toggle_like("p1", "bob")

    assert state.likesCount == 0
    assert store.docs("posts")["p1"]["likesCount"] == -1


@pytest.mark.asyncio
async def test_anonymous_like_is_refused_without_mutation(store, toggles) -> None:
    make_post(store, "p1", "alice")

    with pytest.raises(Unauthenticated):
        await toggles.toggle_like("p1", None)
    assert store.calls == []


@pytest.mark.asyncio
async def test_like_without_post_id_is_refused(store, toggles) -> None:
    with pytest.raises(InvalidRequest):
        await toggles.toggle_like("", "bob")
    assert store.writes() == []


@pytest.mark.asyncio
async def test_like_on_missing_post_is_refused(store, toggles) -> None:
    with pytest.raises(NotFound):
        await toggles.toggle_like("nope", "bob")
    assert store.writes() == []


@pytest.mark.asyncio
async def test_store_failure_propagates_from_like(store, toggles) -> None:
    make_post(store, "p1", "alice")
    store.fail_on("insert", "likes")

    with pytest.raises(StoreFailure):
        await toggles.toggle_like("p1", "bob")
    assert store.docs("posts")["p1"]["likesCount"] == 0

    # re-invoking after the failure works normally
    state = await toggles.toggle_like("p1", "bob")
    assert state.liked is True
    assert state.likesCount == 1


@pytest.mark.asyncio
async def test_follow_then_unfollow_restores_counters(store, toggles) -> None:
    make_profile(store, "u1", followingCount=2)
    make_profile(store, "u2", followersCount=7)

    first = await toggles.toggle_follow("u1", "u2")
    assert first.following is True
    assert first.followersCount == 8
    assert store.docs("users")["u1"]["followingCount"] == 3
    assert await toggles.is_following("u1", "u2")

    second = await toggles.toggle_follow("u1", "u2")
    assert second.following is False
    assert store.docs("users")["u2"]["followersCount"] == 7
    assert store.docs("users")["u1"]["followingCount"] == 2
    assert store.docs("follows") == {}


@pytest.mark.asyncio
async def test_unfollow_removes_duplicate_follows(store, toggles) -> None:
    make_profile(store, "u1", followingCount=2)
    make_profile(store, "u2", followersCount=2)
    store.seed("follows", "f1", {"followerId": "u1", "followingId": "u2"})
    store.seed("follows", "f2", {"followerId": "u1", "followingId": "u2"})

    state = await toggles.toggle_follow("u1", "u2")

    assert state.following is False
    assert store.docs("follows") == {}
    assert store.docs("users")["u2"]["followersCount"] == 1
    assert store.docs("users")["u1"]["followingCount"] == 1


@pytest.mark.asyncio
async def test_follow_refusals(store, toggles) -> None:
    make_profile(store, "u1")

    with pytest.raises(Unauthenticated):
        await toggles.toggle_follow(None, "u1")
    with pytest.raises(InvalidRequest):
        await toggles.toggle_follow("u1", "")
    with pytest.raises(InvalidRequest):
        await toggles.toggle_follow("u1", "u1")
    with pytest.raises(NotFound):
        await toggles.toggle_follow("u1", "ghost")

    assert store.writes() == []


@pytest.mark.asyncio
async def test_anonymous_state_probes_are_false(store, toggles) -> None:
    make_post(store, "p1", "alice")

    assert await toggles.has_liked("p1", None) is False
    assert await toggles.is_following(None, "alice") is False


@pytest.mark.asyncio
async def test_like_on_someone_elses_private_post_is_refused(store, toggles) -> None:
    make_post(store, "p1", "alice", isPrivate=True, likesCount=4)

    with pytest.raises(Unauthorized):
        await toggles.toggle_like("p1", "mallory")

    assert store.writes() == []
    assert ("query", "likes") not in store.calls
    assert store.docs("posts")["p1"]["likesCount"] == 4

    own = await toggles.toggle_like("p1", "alice")
    assert own.liked is True
    assert own.likesCount == 5
