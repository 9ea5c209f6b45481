# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, Optional

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from dependencies import get_current_user, get_optional_user
from errors import Unauthenticated
from main import app as fastapi_app
from models.user import User
from services.posts import PostService
from services.reconciler import CounterReconciler
from services.toggles import ToggleEngine
from services.users import UsersService
from tests.fakes import FakeFirestore


def make_post(store: FakeFirestore, post_id: str, author_id: str, **fields: Any) -> str:
    data = {
        "authorId": author_id,
        "authorName": author_id.title(),
        "avatar": "",
        "title": f"Title of {post_id}",
        "content": f"Content of {post_id}",
        "tags": [],
        "likesCount": 0,
        "isPrivate": False,
        "createdAt": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    data.update(fields)
    return store.seed("posts", post_id, data)


def make_profile(store: FakeFirestore, uid: str, username: Optional[str] = None, **fields: Any) -> str:
    data = {
        "uid": uid,
        "name": uid.title(),
        "username": (username or uid).lower(),
        "bio": "",
        "avatar": "",
        "followersCount": 0,
        "followingCount": 0,
    }
    data.update(fields)
    return store.seed("users", uid, data)


@pytest.fixture()
def store() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture()
def reconciler(store: FakeFirestore) -> CounterReconciler:
    return CounterReconciler(store)


@pytest.fixture()
def toggles(store: FakeFirestore) -> ToggleEngine:
    return ToggleEngine(store)


@pytest.fixture()
def posts(store: FakeFirestore, reconciler: CounterReconciler, toggles: ToggleEngine) -> PostService:
    return PostService(store, reconciler, toggles)


@pytest.fixture()
def users(store: FakeFirestore, reconciler: CounterReconciler) -> UsersService:
    return UsersService(store, reconciler)


def _user_from_header(request: Request) -> Optional[User]:
    # tests authenticate with "Authorization: Bearer <uid>"
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    return User(user_id=authorization.split("Bearer ")[1], email=None)


async def _test_optional_user(request: Request) -> Optional[User]:
    return _user_from_header(request)


async def _test_current_user(request: Request) -> User:
    user = _user_from_header(request)
    if user is None:
        raise Unauthenticated()
    return user


@pytest.fixture()
def client(
        store: FakeFirestore,
        reconciler: CounterReconciler,
        toggles: ToggleEngine,
        posts: PostService,
        users: UsersService,
) -> Iterator[TestClient]:
    # no `with` block: the lifespan would initialize Firebase
    fastapi_app.state.toggle_engine = toggles
    fastapi_app.state.post_service = posts
    fastapi_app.state.users_service = users
    fastapi_app.dependency_overrides[get_optional_user] = _test_optional_user
    fastapi_app.dependency_overrides[get_current_user] = _test_current_user
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


def auth(uid: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {uid}"}
