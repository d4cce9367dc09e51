from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_name = Column(String(50), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    games = relationship("Game", back_populates="owner", foreign_keys="Game.owner_id")


class WhitelistEntry(Base):
    __tablename__ = "whitelist"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(100), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    category = Column(String(50), index=True, nullable=False)
    description = Column(String(500), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    domain = Column(String(255), unique=True, index=True, nullable=False)
    logo_url = Column(String(500), nullable=True)
    cover_image_url = Column(String(500), nullable=True)
    cover_video_url = Column(String(500), nullable=True)
    boost_factor = Column(Float, default=1.0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    featured_game = Column(Integer, ForeignKey("games.id"), nullable=True)
    feature_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    owner = relationship("User", back_populates="games", foreign_keys=[owner_id])
    featured = relationship("Game", remote_side=[id], foreign_keys=[featured_game])


class Statistics(Base):
    __tablename__ = "statistics"
    __table_args__ = (
        UniqueConstraint("game_id", "date", name="uq_statistics_game_date"),
        Index("ix_statistics_date", "date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id"), index=True, nullable=False)
    date = Column(Date, nullable=False)
    clicks = Column(Integer, default=0, nullable=False)
    playlight_opens = Column(Integer, default=0, nullable=False)
    referrals = Column(Integer, default=0, nullable=False)


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("game_id", "client_ip", name="uq_likes_game_client"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id"), index=True, nullable=False)
    client_ip = Column(String(45), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
