from datetime import UTC, datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel


class NotificationType(StrEnum):
    MOD_REJECTED = "mod_rejected"
    MOD_APPROVED = "mod_approved"
    NEW_COMMENT = "new_comment"
    GAME_REQUEST = "game_request"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    type: str
    title: str
    message: str = ""
    data: str = "{}"
    is_read: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
