"""Permission checks.

``has_permission`` is a pure function of the main role and the role tuples;
the helpers below load tuples from the store and feed them to it.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from sqlmodel import Session, select

from azurite.errors import PermissionDeniedError
from azurite.models.user import Role, User, UserRole


class Capability(StrEnum):
    ADMINISTER = "administer"
    MODERATE_MODS = "moderate_mods"
    MODERATE_GAME = "moderate_game"
    MANAGE_WIKI = "manage_wiki"
    EDIT_DOCUMENTATION = "edit_documentation"


@dataclass(frozen=True)
class RoleGrant:
    """A role held by a user, global when ``game_id`` is None."""

    role: str
    game_id: int | None = None


# Main roles that satisfy a capability on any game.
_MAIN_ROLES: dict[Capability, frozenset[str]] = {
    Capability.ADMINISTER: frozenset({Role.ADMIN}),
    Capability.MODERATE_MODS: frozenset({Role.ADMIN, Role.COMMUNITY_MODERATOR}),
    Capability.MODERATE_GAME: frozenset({Role.ADMIN}),
    Capability.MANAGE_WIKI: frozenset({Role.ADMIN}),
    Capability.EDIT_DOCUMENTATION: frozenset({Role.ADMIN}),
}

# Role tuples that satisfy a capability when they match the target game.
_GAME_ROLES: dict[Capability, frozenset[str]] = {
    Capability.ADMINISTER: frozenset(),
    Capability.MODERATE_MODS: frozenset({Role.COMMUNITY_MODERATOR}),
    Capability.MODERATE_GAME: frozenset({Role.COMMUNITY_MODERATOR, Role.WIKI_MAINTAINER}),
    Capability.MANAGE_WIKI: frozenset({Role.WIKI_MAINTAINER}),
    Capability.EDIT_DOCUMENTATION: frozenset({Role.COMMUNITY_MODERATOR, Role.WIKI_MAINTAINER}),
}


def has_permission(
    main_role: str,
    grants: Iterable[RoleGrant],
    game_id: int | None,
    capability: Capability,
) -> bool:
    if main_role in _MAIN_ROLES[capability]:
        return True
    if game_id is None:
        return False
    allowed = _GAME_ROLES[capability]
    return any(g.role in allowed and g.game_id in (None, game_id) for g in grants)


def load_grants(session: Session, user_id: int) -> list[RoleGrant]:
    rows = session.exec(select(UserRole).where(UserRole.user_id == user_id)).all()
    return [RoleGrant(role=r.role, game_id=r.game_id) for r in rows]


def user_can(
    session: Session, user: User, capability: Capability, game_id: int | None = None
) -> bool:
    if has_permission(user.role, (), game_id, capability):
        return True
    return has_permission(user.role, load_grants(session, user.id), game_id, capability)  # type: ignore[arg-type]


def require_capability(
    session: Session, user: User, capability: Capability, game_id: int | None = None
) -> None:
    if not user_can(session, user, capability, game_id):
        raise PermissionDeniedError("Insufficient permissions")
