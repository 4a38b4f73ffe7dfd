from datetime import datetime

from pydantic import BaseModel, Field


class BanCreate(BaseModel):
    user_id: int | None = None
    ip_address: str | None = None
    game_id: int | None = None
    reason: str = Field(min_length=1)
    duration: int = Field(default=0, ge=0, description="Ban length in days; 0 is permanent")


class BanOut(BaseModel):
    id: int
    user_id: int | None
    ip_address: str | None
    game_id: int | None
    reason: str
    banned_by: int
    expires_at: datetime | None
    is_active: bool
    created_at: datetime


class NotificationOut(BaseModel):
    id: int
    type: str
    title: str
    message: str
    data: str
    is_read: bool
    created_at: datetime


class CounterRebuild(BaseModel):
    mods_updated: int
    games_updated: int


class PlatformStats(BaseModel):
    total_users: int
    active_users: int
    total_games: int
    total_mods: int
    visible_mods: int
    pending_mods: int
    rejected_mods: int
    total_downloads: int
    active_bans: int
    pending_game_requests: int
