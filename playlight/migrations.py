import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from .db import engine as default_engine

logger = logging.getLogger(__name__)


def _bool_default(engine: Engine, value: bool) -> str:
    if engine.dialect.name == "postgresql":
        return "TRUE" if value else "FALSE"
    return "1" if value else "0"


def _timestamp_type(engine: Engine) -> str:
    return "TIMESTAMP" if engine.dialect.name == "postgresql" else "DATETIME"


def ensure_schema(engine: Engine = default_engine) -> list[str]:
    """Add columns that older deployments are missing; returns the statements run."""
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    applied: list[str] = []

    if "users" in tables:
        columns = {col["name"] for col in inspector.get_columns("users")}
        alters = []
        if "is_admin" not in columns:
            alters.append(
                f"ALTER TABLE users ADD COLUMN is_admin BOOLEAN NOT NULL DEFAULT {_bool_default(engine, False)}"
            )
        applied += _apply_alters(engine, alters)

    if "games" in tables:
        columns = {col["name"] for col in inspector.get_columns("games")}
        alters = []
        if "boost_factor" not in columns:
            alters.append("ALTER TABLE games ADD COLUMN boost_factor FLOAT NOT NULL DEFAULT 1.0")
        if "likes" not in columns:
            alters.append("ALTER TABLE games ADD COLUMN likes INTEGER NOT NULL DEFAULT 0")
        if "featured_game" not in columns:
            alters.append("ALTER TABLE games ADD COLUMN featured_game INTEGER")
        if "feature_expires_at" not in columns:
            alters.append(f"ALTER TABLE games ADD COLUMN feature_expires_at {_timestamp_type(engine)}")
        applied += _apply_alters(engine, alters)

    if "statistics" in tables:
        columns = {col["name"] for col in inspector.get_columns("statistics")}
        alters = []
        if "referrals" not in columns:
            alters.append("ALTER TABLE statistics ADD COLUMN referrals INTEGER NOT NULL DEFAULT 0")
        applied += _apply_alters(engine, alters)

    return applied


def _apply_alters(engine: Engine, statements: list[str]) -> list[str]:
    if not statements:
        return []
    with engine.begin() as connection:
        for statement in statements:
            logger.info("Schema upgrade: %s", statement)
            connection.execute(text(statement))
    return statements
