"""Public mod listing and search.

Every public query is filtered by the visibility predicate: a mod is listed
only once it has been scanned clean and is not rejected.  Owner listings and
the moderation queue deliberately bypass it.
"""

from dataclasses import dataclass, field
from typing import Literal

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, col, func, select

from azurite.errors import ValidationError
from azurite.models.game import Tag
from azurite.models.mod import Mod, ModTag, ScanResult
from azurite.schemas.game import TagOut
from azurite.schemas.mod import ModSummary

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100

SORT_COLUMNS = {
    "created": Mod.created_at,
    "name": Mod.name,
    "downloads": Mod.downloads,
    "likes": Mod.likes,
    "updated": Mod.updated_at,
}

TagMatch = Literal["any", "all"]


@dataclass
class ListingQuery:
    game_id: int = 0
    search: str = ""
    tags: list[str] = field(default_factory=list)
    tag_match: TagMatch = "any"
    sort: str = "created"
    order: str = "desc"
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE


@dataclass
class ListingPage:
    mods: list[ModSummary]
    page: int
    per_page: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.per_page) if self.per_page else 0


def normalize_paging(page: int, per_page: int) -> tuple[int, int]:
    if page < 1:
        page = 1
    if per_page < 1 or per_page > MAX_PER_PAGE:
        per_page = DEFAULT_PER_PAGE
    return page, per_page


def visible() -> ColumnElement[bool]:
    return and_(
        col(Mod.is_scanned).is_(True),
        col(Mod.scan_result) == ScanResult.CLEAN.value,
        col(Mod.is_rejected).is_(False),
    )


def _search_condition(text: str) -> ColumnElement[bool]:
    return or_(
        col(Mod.name).contains(text, autoescape=True),
        col(Mod.description).contains(text, autoescape=True),
        col(Mod.short_description).contains(text, autoescape=True),
    )


def _tag_condition(slugs: list[str], game_id: int, match: TagMatch) -> ColumnElement[bool]:
    tagged = (
        select(ModTag.mod_id)
        .join(Tag, col(Tag.id) == ModTag.tag_id)
        .where(col(Tag.slug).in_(slugs))
    )
    if game_id:
        tagged = tagged.where(Tag.game_id == game_id)
    if match == "all":
        tagged = tagged.group_by(col(ModTag.mod_id)).having(
            func.count(func.distinct(Tag.slug)) == len(set(slugs))
        )
    return col(Mod.id).in_(tagged)


def _order_by(sort: str, order: str) -> list:
    if sort not in SORT_COLUMNS:
        raise ValidationError(f"Invalid sort key: {sort}")
    if order not in ("asc", "desc"):
        raise ValidationError(f"Invalid sort order: {order}")
    column = col(SORT_COLUMNS[sort])
    primary = column.asc() if order == "asc" else column.desc()
    clauses = [primary]
    if sort == "downloads":
        clauses.append(col(Mod.created_at).desc())
    clauses.append(col(Mod.id).asc() if order == "asc" else col(Mod.id).desc())
    return clauses


def tags_for_mods(session: Session, mod_ids: list[int]) -> dict[int, list[TagOut]]:
    result: dict[int, list[TagOut]] = {mod_id: [] for mod_id in mod_ids}
    if not mod_ids:
        return result
    rows = session.exec(
        select(ModTag.mod_id, Tag)
        .join(Tag, col(Tag.id) == ModTag.tag_id)
        .where(col(ModTag.mod_id).in_(mod_ids))
        .order_by(col(Tag.name))
    ).all()
    for mod_id, tag in rows:
        result[mod_id].append(TagOut(**tag.model_dump()))
    return result


def _paginate(
    session: Session, conditions: list, order_by: list, page: int, per_page: int
) -> ListingPage:
    total = session.exec(select(func.count()).select_from(Mod).where(*conditions)).one()
    mods = session.exec(
        select(Mod)
        .where(*conditions)
        .order_by(*order_by)
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    tags = tags_for_mods(session, [m.id for m in mods])  # type: ignore[misc]
    summaries = [ModSummary(**m.model_dump(), tags=tags[m.id]) for m in mods]  # type: ignore[index]
    return ListingPage(mods=summaries, page=page, per_page=per_page, total=total)


def list_mods(session: Session, query: ListingQuery) -> ListingPage:
    """Public listing filtered by game, text and tags; ``game_id`` 0 lists every game."""
    page, per_page = normalize_paging(query.page, query.per_page)
    order_by = _order_by(query.sort or "created", query.order or "desc")

    conditions: list = [visible()]
    if query.game_id:
        conditions.append(Mod.game_id == query.game_id)
    if query.search:
        conditions.append(_search_condition(query.search))
    slugs = [s for s in query.tags if s]
    if slugs:
        conditions.append(_tag_condition(slugs, query.game_id, query.tag_match))
    return _paginate(session, conditions, order_by, page, per_page)


def search_mods(
    session: Session, text: str, game_id: int = 0, page: int = 1, per_page: int = DEFAULT_PER_PAGE
) -> ListingPage:
    """Free-text search across all games, most downloaded first."""
    page, per_page = normalize_paging(page, per_page)
    conditions: list = [visible(), _search_condition(text)]
    if game_id > 0:
        conditions.append(Mod.game_id == game_id)
    return _paginate(session, conditions, _order_by("downloads", "desc"), page, per_page)


def list_owner_mods(
    session: Session, owner_id: int, page: int = 1, per_page: int = DEFAULT_PER_PAGE
) -> ListingPage:
    page, per_page = normalize_paging(page, per_page)
    return _paginate(
        session, [Mod.owner_id == owner_id], _order_by("created", "desc"), page, per_page
    )


def list_pending_mods(
    session: Session, page: int = 1, per_page: int = DEFAULT_PER_PAGE
) -> ListingPage:
    """Moderation queue: mods still awaiting a scan verdict."""
    page, per_page = normalize_paging(page, per_page)
    conditions = [col(Mod.is_scanned).is_(False), col(Mod.is_rejected).is_(False)]
    return _paginate(session, conditions, _order_by("created", "desc"), page, per_page)
