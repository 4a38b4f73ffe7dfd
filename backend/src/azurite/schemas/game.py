from datetime import datetime

from pydantic import BaseModel, Field


class GameCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    icon: str = ""


class GameUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    icon: str | None = None
    is_active: bool | None = None


class GameOut(BaseModel):
    id: int
    name: str
    slug: str
    description: str
    icon: str
    is_active: bool
    mod_count: int
    created_at: datetime
    updated_at: datetime


class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class TagOut(BaseModel):
    id: int
    name: str
    slug: str
    game_id: int


class GameRequestCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str
    icon: str = ""


class GameRequestReview(BaseModel):
    admin_notes: str = ""


class GameRequestOut(BaseModel):
    id: int
    name: str
    description: str
    icon: str
    requested_by: int
    status: str
    admin_notes: str
    created_at: datetime
    updated_at: datetime


class ModeratorAssign(BaseModel):
    user_id: int
