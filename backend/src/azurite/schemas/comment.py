from datetime import datetime

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    parent_id: int | None = None


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1)


class CommentModerate(BaseModel):
    is_active: bool


class CommentOut(BaseModel):
    id: int
    mod_id: int
    user_id: int
    username: str = ""
    content: str
    parent_id: int | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    replies: list["CommentOut"] = []
