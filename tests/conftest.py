import os
from datetime import datetime

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_RESET_SECRET"] = "test-reset-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CLEANUP_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CAPTCHA_SECRET_KEY"] = ""
os.environ["UPLOADTHING_TOKEN"] = ""
os.environ["TRUST_PROXY_HEADERS"] = "true"
os.environ["CORS_ORIGIN"] = "https://dashboard.playlight.dev,/https://.*\\.playlight\\.dev/"

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from playlight.core.cache import cache_registry
from playlight.core.security import create_session_token, hash_password
from playlight.db import Base, build_engine, get_db
from playlight.main import app
from playlight.models import Game, Statistics, User, WhitelistEntry


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture()
def engine():
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def clock():
    fake = FakeClock()
    cache_registry.configure(fake)
    yield fake
    cache_registry.configure(FakeClock())


@pytest.fixture()
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    def _make_user(email="player@example.com", password="Password123", is_admin=False, user_name=None):
        user = User(
            user_name=user_name or email.split("@")[0],
            email=email,
            password=hash_password(password),
            is_admin=is_admin,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_game(db):
    counter = {"n": 0}

    def _make_game(owner, **fields):
        counter["n"] += 1
        values = {
            "name": f"Game {counter['n']}",
            "category": "Puzzle",
            "description": "A small game.",
            "domain": f"game{counter['n']}.example.com",
            "owner_id": owner.id,
            "created_at": datetime(2020, 1, 1),
        }
        values.update(fields)
        game = Game(**values)
        db.add(game)
        db.commit()
        db.refresh(game)
        return game

    return _make_game


@pytest.fixture()
def add_stats(db):
    def _add_stats(game, day, clicks=0, playlight_opens=0, referrals=0):
        row = Statistics(
            game_id=game.id,
            date=day,
            clicks=clicks,
            playlight_opens=playlight_opens,
            referrals=referrals,
        )
        db.add(row)
        db.commit()
        return row

    return _add_stats


@pytest.fixture()
def whitelist(db):
    def _whitelist(email):
        db.add(WhitelistEntry(email=email))
        db.commit()

    return _whitelist


def auth_headers(user):
    return {"Authorization": f"Bearer {create_session_token(user.id, user.email)}"}
