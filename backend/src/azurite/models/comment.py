from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: int | None = Field(default=None, primary_key=True)
    mod_id: int = Field(foreign_key="mods.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    content: str
    parent_id: int | None = Field(default=None, foreign_key="comments.id", index=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
