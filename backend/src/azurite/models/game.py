from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class GameRequestStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class Game(SQLModel, table=True):
    __tablename__ = "games"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    slug: str = Field(index=True, unique=True)
    description: str = ""
    icon: str = ""
    is_active: bool = True
    mod_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Tag(SQLModel, table=True):
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("slug", "game_id"),)

    id: int | None = Field(default=None, primary_key=True)
    name: str
    slug: str = Field(index=True)
    game_id: int = Field(foreign_key="games.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class GameRequest(SQLModel, table=True):
    __tablename__ = "game_requests"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    description: str = ""
    icon: str = ""
    requested_by: int = Field(foreign_key="users.id", index=True)
    status: str = GameRequestStatus.PENDING.value
    admin_notes: str = "No admin notes at this time"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Documentation(SQLModel, table=True):
    __tablename__ = "documentation"
    __table_args__ = (UniqueConstraint("slug", "game_id"),)

    id: int | None = Field(default=None, primary_key=True)
    game_id: int = Field(foreign_key="games.id", index=True)
    title: str
    slug: str = Field(index=True)
    content: str = ""
    author_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
