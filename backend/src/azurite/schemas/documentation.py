from datetime import datetime

from pydantic import BaseModel, Field


class DocumentationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str


class DocumentationUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = None


class DocumentationOut(BaseModel):
    id: int
    game_id: int
    title: str
    slug: str
    content: str
    author_id: int
    created_at: datetime
    updated_at: datetime
