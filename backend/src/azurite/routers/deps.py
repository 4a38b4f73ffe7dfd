"""Shared FastAPI dependencies used across routers."""

from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session, select

from azurite.auth import decode_access_token
from azurite.database import get_session
from azurite.errors import AuthenticationError, PermissionDeniedError
from azurite.models.comment import Comment
from azurite.models.game import Documentation, Game
from azurite.models.mod import Mod
from azurite.models.user import Role, User
from azurite.services import ban_gate
from azurite.services.listing import normalize_paging
from azurite.utils.text import client_ip

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Paging:
    page: int
    per_page: int


def get_paging(page: int = 1, per_page: int = 20) -> Paging:
    page, per_page = normalize_paging(page, per_page)
    return Paging(page=page, per_page=per_page)


def _user_from_token(session: Session, token: str) -> User:
    claims = decode_access_token(token)
    user = session.get(User, claims["user_id"])
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid token")
    return user


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    if credentials is None:
        return None
    try:
        return _user_from_token(session, credentials.credentials)
    except AuthenticationError:
        return None


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    if credentials is None:
        raise AuthenticationError("Authorization header required")
    return _user_from_token(session, credentials.credentials)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != Role.ADMIN.value:
        raise PermissionDeniedError("Insufficient permissions")
    return user


def require_moderator(user: User = Depends(get_current_user)) -> User:
    if user.role not in (Role.ADMIN.value, Role.COMMUNITY_MODERATOR.value):
        raise PermissionDeniedError("Insufficient permissions")
    return user


def target_game_id(request: Request, session: Session) -> int | None:
    """Resolve the game a request is aimed at from its path parameters, if any."""
    params = request.path_params
    try:
        if "game_id" in params:
            return int(params["game_id"])
        if "game_slug" in params:
            return session.exec(select(Game.id).where(Game.slug == params["game_slug"])).first()
        if "mod_id" in params:
            mod = session.get(Mod, int(params["mod_id"]))
            return mod.game_id if mod else None
        if "comment_id" in params:
            comment = session.get(Comment, int(params["comment_id"]))
            mod = session.get(Mod, comment.mod_id) if comment else None
            return mod.game_id if mod else None
        if "doc_id" in params:
            doc = session.get(Documentation, int(params["doc_id"]))
            return doc.game_id if doc else None
    except ValueError:
        return None
    return None


def enforce_ban_gate(
    request: Request,
    session: Session = Depends(get_session),
    user: User | None = Depends(get_optional_user),
) -> None:
    ban_gate.check_request(
        session,
        ip_address=request_ip(request),
        user_id=user.id if user else None,
        game_id=target_game_id(request, session),
    )


def request_ip(request: Request) -> str:
    return client_ip(request.headers, request.client.host if request.client else None)
