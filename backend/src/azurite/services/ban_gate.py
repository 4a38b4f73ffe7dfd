"""Ban evaluation and administration.

A ban is in effect while it is active and unexpired.  A ban with no game
scope applies platform-wide; a scoped ban only applies to requests that
target that game.
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import func, or_, update
from sqlmodel import Session, col, select

from azurite.errors import BannedError, NotFoundError, ValidationError
from azurite.models.ban import Ban
from azurite.models.game import Game
from azurite.models.user import User

logger = logging.getLogger(__name__)

IP_BANNED_MESSAGE = "Your IP address has been banned from this service"
USER_BANNED_MESSAGE = "Your account has been banned"


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def is_in_effect(ban: Ban, now: datetime | None = None) -> bool:
    now = now or datetime.now(UTC)
    if not ban.is_active:
        return False
    return ban.expires_at is None or _as_utc(ban.expires_at) > now


def find_active_ban(
    session: Session,
    *,
    ip_address: str | None = None,
    user_id: int | None = None,
    game_id: int | None = None,
    now: datetime | None = None,
) -> Ban | None:
    """Return an in-effect ban matching the address or the user within the game scope."""
    if not ip_address and user_id is None:
        return None
    now = now or datetime.now(UTC)

    principal = []
    if ip_address:
        principal.append(Ban.ip_address == ip_address)
    if user_id is not None:
        principal.append(Ban.user_id == user_id)

    scope = col(Ban.game_id).is_(None)
    if game_id is not None:
        scope = or_(scope, Ban.game_id == game_id)

    stmt = (
        select(Ban)
        .where(
            col(Ban.is_active).is_(True),
            or_(col(Ban.expires_at).is_(None), col(Ban.expires_at) > now),
            or_(*principal),
            scope,
        )
        .order_by(col(Ban.id))
    )
    # Prefer reporting an address ban, matching the order checks are made in.
    bans = [b for b in session.exec(stmt).all() if is_in_effect(b, now)]
    if not bans:
        return None
    for ban in bans:
        if ip_address and ban.ip_address == ip_address:
            return ban
    return bans[0]


def check_request(
    session: Session,
    *,
    ip_address: str | None,
    user_id: int | None,
    game_id: int | None = None,
) -> None:
    """Raise ``BannedError`` when the request principal is banned in the target scope."""
    ban = find_active_ban(session, ip_address=ip_address, user_id=user_id, game_id=game_id)
    if ban is None:
        return
    if ip_address and ban.ip_address == ip_address:
        logger.info("Denied request from banned address %s (ban %d)", ip_address, ban.id)
        raise BannedError(IP_BANNED_MESSAGE)
    logger.info("Denied request from banned user %s (ban %d)", user_id, ban.id)
    raise BannedError(USER_BANNED_MESSAGE)


def create_ban(
    session: Session,
    *,
    banned_by: int,
    reason: str,
    user_id: int | None = None,
    ip_address: str | None = None,
    game_id: int | None = None,
    duration_days: int = 0,
) -> Ban:
    if user_id is None and not ip_address:
        raise ValidationError("Either user_id or ip_address must be provided")
    if not reason.strip():
        raise ValidationError("Ban reason is required")
    if duration_days < 0:
        raise ValidationError("Ban duration cannot be negative")
    if user_id is not None and session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if game_id is not None and session.get(Game, game_id) is None:
        raise NotFoundError("Game not found")

    expires_at = None
    if duration_days > 0:
        expires_at = datetime.now(UTC) + timedelta(days=duration_days)

    ban = Ban(
        user_id=user_id,
        ip_address=ip_address or None,
        game_id=game_id,
        reason=reason,
        banned_by=banned_by,
        expires_at=expires_at,
    )
    session.add(ban)
    session.commit()
    session.refresh(ban)
    logger.info("Ban %d created by user %d", ban.id, banned_by)
    return ban


def get_ban(session: Session, ban_id: int) -> Ban:
    ban = session.get(Ban, ban_id)
    if ban is None:
        raise NotFoundError("Ban not found")
    return ban


def list_bans(
    session: Session,
    *,
    active: bool = True,
    game_id: int | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Ban], int]:
    conditions = [col(Ban.is_active).is_(active)]
    if game_id is not None:
        conditions.append(Ban.game_id == game_id)
    total = session.exec(select(func.count()).select_from(Ban).where(*conditions)).one()
    bans = session.exec(
        select(Ban)
        .where(*conditions)
        .order_by(col(Ban.created_at).desc(), col(Ban.id).desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return list(bans), total


def unban(session: Session, ban_id: int) -> None:
    ban = session.get(Ban, ban_id)
    if ban is None or not ban.is_active:
        raise NotFoundError("Ban not found or already inactive")
    ban.is_active = False
    session.add(ban)
    session.commit()
    logger.info("Ban %d lifted", ban_id)


def cleanup_expired_bans(session: Session, now: datetime | None = None) -> int:
    """Deactivate bans whose expiry has passed; returns how many were swept."""
    now = now or datetime.now(UTC)
    result = session.exec(  # type: ignore[call-overload]
        update(Ban)
        .where(
            col(Ban.is_active).is_(True),
            col(Ban.expires_at).is_not(None),
            col(Ban.expires_at) <= now,
        )
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    if result.rowcount:
        logger.info("Expired %d bans", result.rowcount)
    return result.rowcount
