from fastapi import APIRouter, Depends
from sqlmodel import Session

from azurite.database import get_session
from azurite.models.user import User
from azurite.routers.deps import Paging, get_paging, require_admin
from azurite.schemas.admin import BanCreate, BanOut, CounterRebuild, PlatformStats
from azurite.schemas.common import Envelope, Page, ok
from azurite.schemas.user import RoleUpdate, UserOut
from azurite.services import admin_service, ban_gate, mod_service, user_service

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/stats", response_model=Envelope[PlatformStats])
def get_stats(session: Session = Depends(get_session)) -> Envelope:
    return ok(admin_service.platform_stats(session))


@router.get("/users", response_model=Envelope[Page[UserOut]])
def list_users(
    paging: Paging = Depends(get_paging), session: Session = Depends(get_session)
) -> Envelope:
    users, total = user_service.list_users(session, paging.page, paging.per_page)
    return ok(Page.build(users, paging.page, paging.per_page, total))


@router.put("/users/{user_id}/role", response_model=Envelope[UserOut])
def update_user_role(
    user_id: int, data: RoleUpdate, session: Session = Depends(get_session)
) -> Envelope:
    return ok(user_service.set_role(session, user_id, data.role), "User role updated")


@router.post("/users/{user_id}/deactivate", response_model=Envelope[UserOut])
def deactivate_user(user_id: int, session: Session = Depends(get_session)) -> Envelope:
    return ok(user_service.set_active(session, user_id, False), "User deactivated")


@router.post("/users/{user_id}/activate", response_model=Envelope[UserOut])
def activate_user(user_id: int, session: Session = Depends(get_session)) -> Envelope:
    return ok(user_service.set_active(session, user_id, True), "User activated")


@router.get("/bans", response_model=Envelope[Page[BanOut]])
def list_bans(
    active: bool = True,
    game_id: int | None = None,
    paging: Paging = Depends(get_paging),
    session: Session = Depends(get_session),
) -> Envelope:
    bans, total = ban_gate.list_bans(
        session, active=active, game_id=game_id, page=paging.page, per_page=paging.per_page
    )
    return ok(Page.build(bans, paging.page, paging.per_page, total))


@router.post("/bans", response_model=Envelope[BanOut], status_code=201)
def create_ban(
    data: BanCreate,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    ban = ban_gate.create_ban(
        session,
        banned_by=admin.id,  # type: ignore[arg-type]
        reason=data.reason,
        user_id=data.user_id,
        ip_address=data.ip_address,
        game_id=data.game_id,
        duration_days=data.duration,
    )
    return ok(ban, "Ban created successfully")


@router.post("/bans/cleanup", response_model=Envelope[int])
def cleanup_bans(session: Session = Depends(get_session)) -> Envelope:
    return ok(ban_gate.cleanup_expired_bans(session), "Expired bans cleaned up")


@router.get("/bans/{ban_id}", response_model=Envelope[BanOut])
def get_ban(ban_id: int, session: Session = Depends(get_session)) -> Envelope:
    return ok(ban_gate.get_ban(session, ban_id))


@router.delete("/bans/{ban_id}", response_model=Envelope[None])
def unban(ban_id: int, session: Session = Depends(get_session)) -> Envelope:
    ban_gate.unban(session, ban_id)
    return ok(message="Ban lifted successfully")


@router.post("/counters/rebuild", response_model=Envelope[CounterRebuild])
def rebuild_counters(session: Session = Depends(get_session)) -> Envelope:
    mods_updated, games_updated = mod_service.rebuild_counters(session)
    return ok(CounterRebuild(mods_updated=mods_updated, games_updated=games_updated))
