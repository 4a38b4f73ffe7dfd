import logging
from datetime import UTC, datetime

from sqlalchemy import or_
from sqlmodel import Session, col, func, select

from azurite.errors import NotFoundError, PermissionDeniedError, ValidationError
from azurite.models.game import Documentation, Game
from azurite.models.user import User
from azurite.schemas.documentation import DocumentationCreate, DocumentationUpdate
from azurite.services.authorization import Capability, require_capability, user_can
from azurite.services.slug_allocator import insert_with_slug

logger = logging.getLogger(__name__)


def create_doc(
    session: Session, game_id: int, data: DocumentationCreate, author: User
) -> Documentation:
    game = session.get(Game, game_id)
    if game is None:
        raise NotFoundError("Game not found")
    require_capability(session, author, Capability.EDIT_DOCUMENTATION, game_id)
    if not data.title.strip():
        raise ValidationError("Title is required")

    try:
        doc = insert_with_slug(
            session,
            Documentation,
            data.title,
            lambda slug: Documentation(
                game_id=game_id,
                title=data.title.strip(),
                slug=slug,
                content=data.content,
                author_id=author.id,  # type: ignore[arg-type]
            ),
            game_id=game_id,
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(doc)
    logger.info("Created documentation %d (%s) for game %d", doc.id, doc.slug, game_id)
    return doc


def get_doc(session: Session, doc_id: int) -> Documentation:
    doc = session.get(Documentation, doc_id)
    if doc is None:
        raise NotFoundError("Documentation not found")
    return doc


def get_doc_by_slug(session: Session, game_slug: str, doc_slug: str) -> Documentation:
    doc = session.exec(
        select(Documentation)
        .join(Game, col(Game.id) == Documentation.game_id)
        .where(Game.slug == game_slug, Documentation.slug == doc_slug)
    ).first()
    if doc is None:
        raise NotFoundError("Documentation not found")
    return doc


def _page(
    session: Session, conditions: list, page: int, per_page: int
) -> tuple[list[Documentation], int]:
    total = session.exec(select(func.count()).select_from(Documentation).where(*conditions)).one()
    docs = session.exec(
        select(Documentation)
        .where(*conditions)
        .order_by(col(Documentation.title), col(Documentation.id))
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return list(docs), total


def list_docs(
    session: Session, game_id: int, page: int, per_page: int
) -> tuple[list[Documentation], int]:
    return _page(session, [Documentation.game_id == game_id], page, per_page)


def search_docs(
    session: Session, game_id: int, query: str, page: int, per_page: int
) -> tuple[list[Documentation], int]:
    conditions = [
        Documentation.game_id == game_id,
        or_(
            col(Documentation.title).contains(query, autoescape=True),
            col(Documentation.content).contains(query, autoescape=True),
        ),
    ]
    return _page(session, conditions, page, per_page)


def _check_can_modify(session: Session, doc: Documentation, user: User, action: str) -> None:
    if doc.author_id == user.id:
        return
    if not user_can(session, user, Capability.EDIT_DOCUMENTATION, doc.game_id):
        raise PermissionDeniedError(f"Not authorized to {action} this documentation")


def update_doc(
    session: Session, doc_id: int, data: DocumentationUpdate, user: User
) -> Documentation:
    doc = get_doc(session, doc_id)
    _check_can_modify(session, doc, user, "update")
    if data.title is not None:
        if not data.title.strip():
            raise ValidationError("Title is required")
        doc.title = data.title.strip()
    if data.content is not None:
        doc.content = data.content
    doc.updated_at = datetime.now(UTC)
    session.add(doc)
    session.commit()
    session.refresh(doc)
    return doc


def delete_doc(session: Session, doc_id: int, user: User) -> None:
    doc = get_doc(session, doc_id)
    _check_can_modify(session, doc, user, "delete")
    session.delete(doc)
    session.commit()
