import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from azurite.errors import ConflictError, NotFoundError, ValidationError
from azurite.models.game import Game, GameRequest, GameRequestStatus, Tag
from azurite.models.mod import Mod, ModTag
from azurite.models.user import Role, User, UserRole
from azurite.schemas.game import GameCreate, GameRequestCreate, GameUpdate
from azurite.services import notification_service
from azurite.services.slug_allocator import insert_with_slug
from azurite.utils.text import slugify

logger = logging.getLogger(__name__)


def get_game(session: Session, game_id: int) -> Game:
    game = session.get(Game, game_id)
    if game is None:
        raise NotFoundError("Game not found")
    return game


def get_game_by_slug(session: Session, slug: str) -> Game:
    game = session.exec(select(Game).where(Game.slug == slug)).first()
    if game is None:
        raise NotFoundError("Game not found")
    return game


def list_games(session: Session, page: int, per_page: int) -> tuple[list[Game], int]:
    active = col(Game.is_active).is_(True)
    total = session.exec(select(func.count()).select_from(Game).where(active)).one()
    games = session.exec(
        select(Game)
        .where(active)
        .order_by(col(Game.name), col(Game.id))
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return list(games), total


def _insert_game(session: Session, name: str, description: str, icon: str) -> Game:
    return insert_with_slug(
        session,
        Game,
        name,
        lambda slug: Game(name=name, slug=slug, description=description, icon=icon),
    )


def create_game(session: Session, data: GameCreate) -> Game:
    if not data.name.strip():
        raise ValidationError("Game name is required")
    try:
        game = _insert_game(session, data.name.strip(), data.description, data.icon)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(game)
    logger.info("Created game %d (%s)", game.id, game.slug)
    return game


def update_game(session: Session, game_id: int, data: GameUpdate) -> Game:
    game = get_game(session, game_id)
    for field, value in data.model_dump(exclude_none=True).items():
        setattr(game, field, value)
    game.updated_at = datetime.now(UTC)
    session.add(game)
    session.commit()
    session.refresh(game)
    return game


def delete_game(session: Session, game_id: int) -> None:
    """Deactivate a game; refused while any mod still references it."""
    game = get_game(session, game_id)
    referenced = session.exec(
        select(func.count()).select_from(Mod).where(Mod.game_id == game_id)
    ).one()
    if game.mod_count > 0 or referenced > 0:
        raise ConflictError("Cannot delete game with existing mods")
    game.is_active = False
    game.updated_at = datetime.now(UTC)
    session.add(game)
    session.commit()
    logger.info("Deactivated game %d", game_id)


# Tags


def list_tags(session: Session, game_id: int) -> list[Tag]:
    get_game(session, game_id)
    return list(
        session.exec(select(Tag).where(Tag.game_id == game_id).order_by(col(Tag.name))).all()
    )


def create_tag(session: Session, game_id: int, name: str) -> Tag:
    get_game(session, game_id)
    name = name.strip()
    if not name:
        raise ValidationError("Tag name is required")
    slug = slugify(name)
    if session.exec(select(Tag).where(Tag.slug == slug, Tag.game_id == game_id)).first():
        raise ConflictError("Tag already exists")
    tag = Tag(name=name, slug=slug, game_id=game_id)
    session.add(tag)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError("Tag already exists") from exc
    session.refresh(tag)
    return tag


def delete_tag(session: Session, tag_id: int) -> None:
    tag = session.get(Tag, tag_id)
    if tag is None:
        raise NotFoundError("Tag not found")
    in_use = session.exec(
        select(func.count()).select_from(ModTag).where(ModTag.tag_id == tag_id)
    ).one()
    if in_use:
        raise ConflictError("Cannot delete tag that is in use")
    session.delete(tag)
    session.commit()


# Game requests


def create_request(session: Session, data: GameRequestCreate, user: User) -> GameRequest:
    request = GameRequest(
        name=data.name.strip(),
        description=data.description,
        icon=data.icon,
        requested_by=user.id,  # type: ignore[arg-type]
    )
    session.add(request)
    admin_ids = session.exec(
        select(User.id).where(User.role == Role.ADMIN.value, col(User.is_active).is_(True))
    ).all()
    notification_service.notify_game_request(
        session,
        [a for a in admin_ids if a is not None],
        user.display_name or user.username,
        request.name,
    )
    session.commit()
    session.refresh(request)
    return request


def get_request(session: Session, request_id: int) -> GameRequest:
    request = session.get(GameRequest, request_id)
    if request is None:
        raise NotFoundError("Game request not found")
    return request


def list_requests(
    session: Session, page: int, per_page: int, status: str | None = None
) -> tuple[list[GameRequest], int]:
    conditions = []
    if status:
        if status not in {s.value for s in GameRequestStatus}:
            raise ValidationError(f"Invalid status: {status}")
        conditions.append(GameRequest.status == status)
    total = session.exec(select(func.count()).select_from(GameRequest).where(*conditions)).one()
    requests = session.exec(
        select(GameRequest)
        .where(*conditions)
        .order_by(col(GameRequest.created_at).desc(), col(GameRequest.id).desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return list(requests), total


def _pending_request(session: Session, request_id: int) -> GameRequest:
    request = get_request(session, request_id)
    if request.status != GameRequestStatus.PENDING.value:
        raise ConflictError("Request is not pending")
    return request


def approve_request(session: Session, request_id: int, admin_notes: str = "") -> Game:
    """Create the requested game and mark the request approved in one transaction."""
    request = _pending_request(session, request_id)
    try:
        game = _insert_game(session, request.name, request.description, request.icon)
        request.status = GameRequestStatus.APPROVED.value
        if admin_notes:
            request.admin_notes = admin_notes
        request.updated_at = datetime.now(UTC)
        session.add(request)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(game)
    logger.info("Game request %d approved as game %d", request_id, game.id)
    return game


def deny_request(session: Session, request_id: int, admin_notes: str = "") -> GameRequest:
    request = _pending_request(session, request_id)
    request.status = GameRequestStatus.DENIED.value
    if admin_notes:
        request.admin_notes = admin_notes
    request.updated_at = datetime.now(UTC)
    session.add(request)
    session.commit()
    session.refresh(request)
    return request


# Per-game moderators


def assign_moderator(session: Session, game_id: int, user_id: int) -> UserRole:
    get_game(session, game_id)
    if session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    existing = session.exec(
        select(UserRole).where(
            UserRole.user_id == user_id,
            UserRole.game_id == game_id,
            UserRole.role == Role.COMMUNITY_MODERATOR.value,
        )
    ).first()
    if existing:
        raise ConflictError("User is already a moderator for this game")
    role = UserRole(user_id=user_id, game_id=game_id, role=Role.COMMUNITY_MODERATOR.value)
    session.add(role)
    session.commit()
    session.refresh(role)
    return role


def remove_moderator(session: Session, game_id: int, user_id: int) -> None:
    role = session.exec(
        select(UserRole).where(
            UserRole.user_id == user_id,
            UserRole.game_id == game_id,
            UserRole.role == Role.COMMUNITY_MODERATOR.value,
        )
    ).first()
    if role is None:
        raise NotFoundError("Moderator not found")
    session.delete(role)
    session.commit()


def list_moderators(session: Session, game_id: int) -> list[User]:
    get_game(session, game_id)
    return list(
        session.exec(
            select(User)
            .join(UserRole, col(UserRole.user_id) == User.id)
            .where(
                UserRole.game_id == game_id,
                UserRole.role == Role.COMMUNITY_MODERATOR.value,
            )
            .order_by(col(User.username))
        ).all()
    )
