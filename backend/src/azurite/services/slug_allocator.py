"""Slug allocation scoped to a table and, optionally, a game.

Probing for a free slug is only a hint; the unique index on the target
table is authoritative.  ``insert_with_slug`` therefore wraps each insert
attempt in a SAVEPOINT and treats an integrity error on the slug as a
collision: bump the suffix and try again.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, func, select

from azurite.utils.text import slugify

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SQLModel)


def candidate(base: str, n: int) -> str:
    return base if n == 0 else f"{base}-{n}"


def slug_taken(session: Session, model: type[SQLModel], slug: str, game_id: int | None) -> bool:
    stmt = select(func.count()).select_from(model).where(model.slug == slug)  # type: ignore[attr-defined]
    if game_id is not None:
        stmt = stmt.where(model.game_id == game_id)  # type: ignore[attr-defined]
    return session.exec(stmt).one() > 0


def _first_free(session: Session, model: type[SQLModel], base: str, game_id: int | None) -> int:
    n = 0
    while slug_taken(session, model, candidate(base, n), game_id):
        n += 1
    return n


def allocate_slug(
    session: Session, model: type[SQLModel], name: str, game_id: int | None = None
) -> str:
    """Return the first free ``base``, ``base-1``, ``base-2``... within the scope.

    ``game_id`` of None means the slug is unique across the whole table.
    """
    base = slugify(name)
    return candidate(base, _first_free(session, model, base, game_id))


def insert_with_slug(
    session: Session,
    model: type[T],
    name: str,
    build: Callable[[str], T],
    game_id: int | None = None,
) -> T:
    """Insert the row produced by ``build(slug)``, retrying with the next suffix on collision.

    The row is flushed but not committed; the caller owns the outer transaction.
    """
    base = slugify(name)
    n = _first_free(session, model, base, game_id)
    while True:
        slug = candidate(base, n)
        row = build(slug)
        try:
            with session.begin_nested():
                session.add(row)
        except IntegrityError:
            if not slug_taken(session, model, slug, game_id):
                raise
            logger.debug("Slug %r taken concurrently, retrying", slug)
            n += 1
            continue
        return row
