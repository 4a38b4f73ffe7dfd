from sqlmodel import Session, col, func, select

from azurite.models.ban import Ban
from azurite.models.game import Game, GameRequest, GameRequestStatus
from azurite.models.mod import Mod
from azurite.models.user import User
from azurite.schemas.admin import PlatformStats
from azurite.services.listing import visible


def _count(session: Session, model, *conditions) -> int:
    return session.exec(select(func.count()).select_from(model).where(*conditions)).one()


def platform_stats(session: Session) -> PlatformStats:
    return PlatformStats(
        total_users=_count(session, User),
        active_users=_count(session, User, col(User.is_active).is_(True)),
        total_games=_count(session, Game, col(Game.is_active).is_(True)),
        total_mods=_count(session, Mod),
        visible_mods=_count(session, Mod, visible()),
        pending_mods=_count(
            session, Mod, col(Mod.is_scanned).is_(False), col(Mod.is_rejected).is_(False)
        ),
        rejected_mods=_count(session, Mod, col(Mod.is_rejected).is_(True)),
        total_downloads=session.exec(select(func.coalesce(func.sum(Mod.downloads), 0))).one(),
        active_bans=_count(session, Ban, col(Ban.is_active).is_(True)),
        pending_game_requests=_count(
            session, GameRequest, GameRequest.status == GameRequestStatus.PENDING.value
        ),
    )
