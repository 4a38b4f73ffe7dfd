from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from azurite.database import get_session
from azurite.models.user import User
from azurite.routers.deps import Paging, get_current_user, get_paging, require_admin
from azurite.schemas.common import Envelope, Page, ok
from azurite.schemas.game import (
    GameCreate,
    GameOut,
    GameRequestCreate,
    GameRequestOut,
    GameRequestReview,
    GameUpdate,
    ModeratorAssign,
    TagCreate,
    TagOut,
)
from azurite.schemas.mod import ModSummary
from azurite.schemas.user import PublicUserOut
from azurite.services import game_service, listing

router = APIRouter(prefix="/games", tags=["games"])


@router.get("/", response_model=Envelope[Page[GameOut]])
def list_games(
    paging: Paging = Depends(get_paging), session: Session = Depends(get_session)
) -> Envelope:
    games, total = game_service.list_games(session, paging.page, paging.per_page)
    return ok(Page.build(games, paging.page, paging.per_page, total))


@router.post("/", response_model=Envelope[GameOut], status_code=201)
def create_game(
    data: GameCreate,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    return ok(game_service.create_game(session, data), "Game created successfully")


# Game requests


@router.post("/requests", response_model=Envelope[GameRequestOut], status_code=201)
def create_game_request(
    data: GameRequestCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    return ok(game_service.create_request(session, data, user), "Game request submitted")


@router.get("/requests", response_model=Envelope[Page[GameRequestOut]])
def list_game_requests(
    status: str | None = None,
    paging: Paging = Depends(get_paging),
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    requests, total = game_service.list_requests(session, paging.page, paging.per_page, status)
    return ok(Page.build(requests, paging.page, paging.per_page, total))


@router.post("/requests/{request_id}/approve", response_model=Envelope[GameOut])
def approve_game_request(
    request_id: int,
    data: GameRequestReview | None = None,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    notes = data.admin_notes if data else ""
    return ok(game_service.approve_request(session, request_id, notes), "Game request approved")


@router.post("/requests/{request_id}/deny", response_model=Envelope[GameRequestOut])
def deny_game_request(
    request_id: int,
    data: GameRequestReview | None = None,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    notes = data.admin_notes if data else ""
    return ok(game_service.deny_request(session, request_id, notes), "Game request denied")


# Tags


@router.delete("/tags/{tag_id}", response_model=Envelope[None])
def delete_tag(
    tag_id: int,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    game_service.delete_tag(session, tag_id)
    return ok(message="Tag deleted successfully")


@router.get("/{game_id}/tags", response_model=Envelope[list[TagOut]])
def list_tags(game_id: int, session: Session = Depends(get_session)) -> Envelope:
    return ok(game_service.list_tags(session, game_id))


@router.post("/{game_id}/tags", response_model=Envelope[TagOut], status_code=201)
def create_tag(
    game_id: int,
    data: TagCreate,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    return ok(game_service.create_tag(session, game_id, data.name), "Tag created successfully")


# Moderators


@router.get("/{game_id}/moderators", response_model=Envelope[list[PublicUserOut]])
def list_moderators(game_id: int, session: Session = Depends(get_session)) -> Envelope:
    return ok(game_service.list_moderators(session, game_id))


@router.post("/{game_id}/moderators", response_model=Envelope[None], status_code=201)
def assign_moderator(
    game_id: int,
    data: ModeratorAssign,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    game_service.assign_moderator(session, game_id, data.user_id)
    return ok(message="Moderator assigned successfully")


@router.delete("/{game_id}/moderators/{user_id}", response_model=Envelope[None])
def remove_moderator(
    game_id: int,
    user_id: int,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    game_service.remove_moderator(session, game_id, user_id)
    return ok(message="Moderator removed successfully")


# Games by id / slug


@router.put("/{game_id}", response_model=Envelope[GameOut])
def update_game(
    game_id: int,
    data: GameUpdate,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    return ok(game_service.update_game(session, game_id, data), "Game updated successfully")


@router.delete("/{game_id}", response_model=Envelope[None])
def delete_game(
    game_id: int,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Envelope:
    game_service.delete_game(session, game_id)
    return ok(message="Game deleted successfully")


@router.get("/{game_slug}", response_model=Envelope[GameOut])
def get_game(game_slug: str, session: Session = Depends(get_session)) -> Envelope:
    return ok(game_service.get_game_by_slug(session, game_slug))


@router.get("/{game_slug}/mods", response_model=Envelope[Page[ModSummary]])
def list_game_mods(
    game_slug: str,
    search: str = "",
    tags: list[str] = Query(default=[]),
    tag_match: listing.TagMatch = "any",
    sort: str = "created",
    order: str = "desc",
    page: int = 1,
    per_page: int = listing.DEFAULT_PER_PAGE,
    session: Session = Depends(get_session),
) -> Envelope:
    game = game_service.get_game_by_slug(session, game_slug)
    result = listing.list_mods(
        session,
        listing.ListingQuery(
            game_id=game.id,  # type: ignore[arg-type]
            search=search,
            tags=tags,
            tag_match=tag_match,
            sort=sort,
            order=order,
            page=page,
            per_page=per_page,
        ),
    )
    return ok(Page.build(result.mods, result.page, result.per_page, result.total))
