from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel


class ScanResult(StrEnum):
    PENDING = "pending"
    CLEAN = "clean"
    THREAT = "threat"


class Mod(SQLModel, table=True):
    __tablename__ = "mods"
    __table_args__ = (UniqueConstraint("slug", "game_id"),)

    id: int | None = Field(default=None, primary_key=True)
    name: str
    slug: str = Field(index=True)
    description: str = ""
    short_description: str = ""
    icon: str = ""
    version: str
    game_version: str = ""
    game_id: int = Field(foreign_key="games.id", index=True)
    owner_id: int = Field(foreign_key="users.id", index=True)
    downloads: int = 0
    likes: int = 0
    source_website: str = ""
    contact_info: str = ""
    is_rejected: bool = False
    rejection_reason: str | None = None
    is_scanned: bool = False
    scan_result: str = ScanResult.PENDING.value
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ModFile(SQLModel, table=True):
    __tablename__ = "mod_files"
    __table_args__ = (
        Index("ux_mod_files_one_main", "mod_id", unique=True, sqlite_where=text("is_main = 1")),
    )

    id: int | None = Field(default=None, primary_key=True)
    mod_id: int = Field(foreign_key="mods.id", index=True)
    filename: str
    file_path: str
    file_size: int = 0
    mime_type: str = "application/octet-stream"
    hash: str = ""
    is_main: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ModTag(SQLModel, table=True):
    __tablename__ = "mod_tags"

    mod_id: int = Field(foreign_key="mods.id", primary_key=True)
    tag_id: int = Field(foreign_key="tags.id", primary_key=True, index=True)


class ModDependency(SQLModel, table=True):
    """Directional edge: ``mod_id`` requires ``dependency_id``."""

    __tablename__ = "mod_dependencies"
    __table_args__ = (CheckConstraint("mod_id <> dependency_id", name="ck_no_self_dependency"),)

    mod_id: int = Field(foreign_key="mods.id", primary_key=True)
    dependency_id: int = Field(foreign_key="mods.id", primary_key=True, index=True)


class ModLike(SQLModel, table=True):
    __tablename__ = "mod_likes"
    __table_args__ = (UniqueConstraint("mod_id", "user_id"),)

    id: int | None = Field(default=None, primary_key=True)
    mod_id: int = Field(foreign_key="mods.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
