"""Shared fixtures: in-memory SQLite, HS256 tokens and a temp image store."""

import os
import tempfile

# Configuration is read at import time, so it has to be in place first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_JWT_KEY"] = "test-secret"
os.environ["AUTH_JWT_ALGORITHMS"] = "HS256"
os.environ["STORAGE_BACKEND"] = "local"
os.environ.setdefault("POST_IMAGES_DIR", tempfile.mkdtemp(prefix="photofeed-test-"))

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from src.app import app  # noqa: E402
from src.shared.auth.database import Base, SessionLocal, engine, User  # noqa: E402
import src.shared.social.database  # noqa: E402,F401
from src.shared.social.database import Post  # noqa: E402
from src.shared.social.storage import LocalImageStorage, get_image_storage  # noqa: E402

TEST_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def image_storage(tmp_path):
    storage = LocalImageStorage(tmp_path / "posts")
    app.dependency_overrides[get_image_storage] = lambda: storage
    yield storage
    app.dependency_overrides.pop(get_image_storage, None)


@pytest.fixture
def client(image_storage):
    return TestClient(app)


@pytest.fixture
def make_token():
    def _make(sub, **claims):
        payload = {"sub": sub, **claims}
        return jwt.encode(payload, TEST_SECRET, algorithm="HS256")
    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(sub, **claims):
        claims.setdefault("name", sub.title())
        return {"Authorization": f"Bearer {make_token(sub, **claims)}"}
    return _headers


@pytest.fixture
def make_user(db):
    def _make(display_name="Someone", external_auth_id=None, user_id=None):
        user = User(display_name=display_name, external_auth_id=external_auth_id)
        if user_id:
            user.id = user_id
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_post(db):
    base_time = datetime(2024, 1, 1, 12, 0, 0)

    def _make(user, minutes=0, caption=None, image_url="https://cdn.example.com/p.jpg"):
        created_at = base_time + timedelta(minutes=minutes)
        post = Post(
            user_id=user.id,
            image_url=image_url,
            caption=caption,
            created_at=created_at,
            updated_at=created_at,
        )
        db.add(post)
        db.commit()
        db.refresh(post)
        return post
    return _make
