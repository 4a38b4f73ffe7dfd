from datetime import datetime

from pydantic import BaseModel, Field

from azurite.schemas.game import TagOut


class ModCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    short_description: str = Field(default="", max_length=500)
    version: str = Field(min_length=1)
    game_version: str = ""
    game_id: int
    source_website: str = ""
    contact_info: str = ""
    tags: list[str] = []
    dependencies: list[int] = []


class ModUpdate(BaseModel):
    """Fields left as None are unchanged; ``tags`` and ``dependencies`` replace the prior sets."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=500)
    version: str | None = Field(default=None, min_length=1)
    game_version: str | None = None
    source_website: str | None = None
    contact_info: str | None = None
    tags: list[str] | None = None
    dependencies: list[int] | None = None


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1)


class ModFileOut(BaseModel):
    id: int
    mod_id: int
    filename: str
    file_size: int
    mime_type: str
    hash: str
    is_main: bool
    created_at: datetime


class DependencyOut(BaseModel):
    id: int
    name: str
    slug: str
    version: str
    game_id: int


class ModSummary(BaseModel):
    id: int
    name: str
    slug: str
    short_description: str
    icon: str
    version: str
    game_version: str
    game_id: int
    owner_id: int
    downloads: int
    likes: int
    is_rejected: bool
    rejection_reason: str | None = None
    is_scanned: bool
    scan_result: str
    created_at: datetime
    updated_at: datetime
    tags: list[TagOut] = []


class ModOut(ModSummary):
    description: str
    source_website: str
    contact_info: str
    dependencies: list[DependencyOut] = []
    files: list[ModFileOut] = []
    is_liked: bool = False
