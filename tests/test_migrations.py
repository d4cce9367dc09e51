from sqlalchemy import inspect, text
from sqlalchemy.pool import StaticPool

from playlight.db import build_engine
from playlight.migrations import ensure_schema


def _legacy_engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE users (id INTEGER PRIMARY KEY, user_name VARCHAR(50), "
                "email VARCHAR(100), password VARCHAR(255))"
            )
        )
        conn.execute(
            text(
                "CREATE TABLE games (id INTEGER PRIMARY KEY, name VARCHAR(100), "
                "category VARCHAR(50), description VARCHAR(500), owner_id INTEGER, "
                "domain VARCHAR(255))"
            )
        )
        conn.execute(
            text(
                "CREATE TABLE statistics (id INTEGER PRIMARY KEY, game_id INTEGER, "
                "date DATE, clicks INTEGER, playlight_opens INTEGER)"
            )
        )
        conn.execute(text("INSERT INTO games (id, name) VALUES (1, 'Old')"))
    return engine


def test_ensure_schema_adds_missing_columns():
    engine = _legacy_engine()

    applied = ensure_schema(engine)

    assert len(applied) == 6
    inspector = inspect(engine)
    games = {col["name"] for col in inspector.get_columns("games")}
    assert {"boost_factor", "likes", "featured_game", "feature_expires_at"} <= games
    assert "is_admin" in {col["name"] for col in inspector.get_columns("users")}
    assert "referrals" in {col["name"] for col in inspector.get_columns("statistics")}
    with engine.connect() as conn:
        row = conn.execute(text("SELECT boost_factor, likes FROM games WHERE id = 1")).one()
    assert (row[0], row[1]) == (1.0, 0)


def test_ensure_schema_is_idempotent(engine):
    assert ensure_schema(engine) == []
