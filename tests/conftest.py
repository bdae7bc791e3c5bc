import os
from datetime import datetime, timezone

os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.db.db import get_session
from app.main import app
from app.models.item import Item
from app.models.post import Post
from app.models.user import User
from app.utils.auth_helper import Actor, create_access_token


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session

    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session: Session):
    def _make_user(name: str, role: str = "user") -> User:
        user = User(
            public_id=f"{name.lower()}-id",
            name=name,
            email=f"{name.lower()}@nu.edu.pk",
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_item(session: Session):
    def _make_item(reporter=None, item_type: str = "found", title: str = "Black wallet", **fields) -> Item:
        item = Item(
            user_id=reporter.id if reporter else None,
            title=title,
            category="accessories",
            description="Leather wallet with a student card inside",
            location="library",
            type=item_type,
            date=datetime(2026, 10, 1, tzinfo=timezone.utc),
            **fields,
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return _make_item


@pytest.fixture
def make_post(session: Session):
    def _make_post(author, title: str = "Found a calculator near B-Block") -> Post:
        post = Post(
            user_id=author.id,
            title=title,
            content="Casio fx-991, left on a bench after the midterm.",
            category="Electronics",
        )
        session.add(post)
        session.commit()
        session.refresh(post)
        return post

    return _make_post


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def actor_for(user: User) -> Actor:
    return Actor.from_user(user)
