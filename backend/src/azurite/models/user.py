from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"
    COMMUNITY_MODERATOR = "community_moderator"
    WIKI_MAINTAINER = "wiki_maintainer"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    password_hash: str | None = None
    display_name: str
    avatar: str = ""
    bio: str = ""
    role: str = Role.USER.value
    is_active: bool = True
    email_verified: bool = False
    notify_email: bool = True
    notify_in_site: bool = True
    github_id: str | None = Field(default=None, unique=True)
    discord_id: str | None = Field(default=None, unique=True)
    google_id: str | None = Field(default=None, unique=True)
    last_login_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class UserRole(SQLModel, table=True):
    """A role tuple; ``game_id`` of None makes the role global."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "game_id", "role"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    game_id: int | None = Field(default=None, foreign_key="games.id", index=True)
    role: str


class PasswordResetToken(SQLModel, table=True):
    __tablename__ = "password_reset_tokens"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    token: str = Field(index=True, unique=True)
    expires_at: datetime
    used: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
