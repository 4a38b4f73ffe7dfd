from datetime import UTC, datetime

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel


class Ban(SQLModel, table=True):
    __tablename__ = "bans"
    __table_args__ = (
        CheckConstraint("user_id IS NOT NULL OR ip_address IS NOT NULL", name="ck_ban_target"),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: int | None = Field(default=None, foreign_key="users.id", index=True)
    ip_address: str | None = Field(default=None, index=True)
    game_id: int | None = Field(default=None, foreign_key="games.id", index=True)
    reason: str
    banned_by: int = Field(foreign_key="users.id")
    expires_at: datetime | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
