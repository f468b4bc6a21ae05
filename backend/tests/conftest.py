"""
Pytest fixtures and configuration for Show Tracker tests
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("THETVDB_API_KEY", "test-api-key")
os.environ.setdefault("TVDB_BASE_URL", "https://tvdb.test/v4")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta

import httpx
import pytest
import respx
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from showtracker.core.config import settings
from showtracker.core.security import create_id_token
from showtracker.db.base import Base
from showtracker.db.session import get_db
from showtracker.main import app
from showtracker.models.cache import EpisodeCache, ShowCache
from showtracker.models.library import UserShow
from showtracker.models.user import User

TVDB_URL = settings.TVDB_BASE_URL


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = "user-a"):
        return {"Authorization": f"Bearer {create_id_token(user_id)}"}
    return _headers


@pytest.fixture
def tvdb_mock():
    with respx.mock(base_url=TVDB_URL, assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def login_route(tvdb_mock):
    return tvdb_mock.post("/login").mock(
        return_value=httpx.Response(200, json={"data": {"token": "fresh-token"}})
    )


@pytest.fixture
def seed_user(db):
    """Create a user; by default with a PIN and a token valid for ten more days."""
    def _seed(user_id="user-a", pin="1234", token="cached-token", expires_in_days=10):
        user = User(id=user_id, tvdb_pin=pin, tvdb_token=token)
        if token is not None and expires_in_days is not None:
            user.tvdb_token_expires_at = datetime.utcnow() + timedelta(days=expires_in_days)
        db.add(user)
        db.commit()
        return user
    return _seed


@pytest.fixture
def seed_show(db):
    """Track a show for a user and fill the shared cache with its episodes."""
    def _seed(user_id="user-a", tvdb_id="81189", episodes=(), complete=True, title="Breaking Bad"):
        db.add(ShowCache(tvdb_id=tvdb_id, title=title, has_all_episodes=complete))
        db.add(UserShow(user_id=user_id, tvdb_id=tvdb_id, title=title, attention_state="unwatched"))
        for ep in episodes:
            db.add(EpisodeCache(tvdb_id=tvdb_id, **ep))
        db.commit()
    return _seed


def episode_payload(episode_id, season=1, number=1, aired="2020-01-01", name=None):
    return {
        "id": episode_id,
        "name": name or f"Episode {number}",
        "seasonNumber": season,
        "number": number,
        "aired": aired,
        "absoluteNumber": number,
    }


def paged_episodes(pages):
    """respx side effect answering ``?page=N`` with ``pages[N]`` (empty past the end)."""
    def handler(request):
        page = int(request.url.params.get("page", 0))
        episodes = pages[page] if page < len(pages) else []
        return httpx.Response(200, json={"data": {"episodes": episodes}})
    return handler
