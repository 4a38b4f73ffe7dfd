"""Mod lifecycle: creation, editing, uploads, likes, downloads, moderation and deletion."""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, col, func, select

from azurite.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from azurite.models.comment import Comment
from azurite.models.game import Game, Tag
from azurite.models.mod import Mod, ModDependency, ModFile, ModLike, ModTag
from azurite.models.user import User
from azurite.schemas.game import TagOut
from azurite.schemas.mod import DependencyOut, ModCreate, ModFileOut, ModOut, ModUpdate
from azurite.services import notification_service
from azurite.services.authorization import Capability, require_capability
from azurite.services.blob_store import BlobStore
from azurite.services.scan_engine import ScanEngine
from azurite.services.slug_allocator import insert_with_slug
from azurite.utils.text import is_allowed_mod_file, mime_type_for, slugify

logger = logging.getLogger(__name__)

_UPLOAD_ATTEMPTS = 3


def get_mod(session: Session, mod_id: int) -> Mod:
    mod = session.get(Mod, mod_id)
    if mod is None:
        raise NotFoundError("Mod not found")
    return mod


def get_mod_by_slug(session: Session, game_slug: str, mod_slug: str) -> Mod:
    mod = session.exec(
        select(Mod)
        .join(Game, col(Game.id) == Mod.game_id)
        .where(Game.slug == game_slug, Mod.slug == mod_slug)
    ).first()
    if mod is None:
        raise NotFoundError("Mod not found")
    return mod


def _get_owned_mod(session: Session, mod_id: int, user_id: int, action: str) -> Mod:
    mod = get_mod(session, mod_id)
    if mod.owner_id != user_id:
        raise PermissionDeniedError(f"Not authorized to {action} this mod")
    return mod


# Related collections


def mod_tags(session: Session, mod_id: int) -> list[Tag]:
    return list(
        session.exec(
            select(Tag)
            .join(ModTag, col(ModTag.tag_id) == Tag.id)
            .where(ModTag.mod_id == mod_id)
            .order_by(col(Tag.name))
        ).all()
    )


def mod_dependencies(session: Session, mod_id: int) -> list[Mod]:
    return list(
        session.exec(
            select(Mod)
            .join(ModDependency, col(ModDependency.dependency_id) == Mod.id)
            .where(ModDependency.mod_id == mod_id)
            .order_by(col(Mod.name))
        ).all()
    )


def mod_files(session: Session, mod_id: int) -> list[ModFile]:
    """Files with the main file first, then oldest first."""
    return list(
        session.exec(
            select(ModFile)
            .where(ModFile.mod_id == mod_id)
            .order_by(col(ModFile.is_main).desc(), col(ModFile.created_at), col(ModFile.id))
        ).all()
    )


def is_liked(session: Session, mod_id: int, user_id: int | None) -> bool:
    if user_id is None:
        return False
    return (
        session.exec(
            select(ModLike).where(ModLike.mod_id == mod_id, ModLike.user_id == user_id)
        ).first()
        is not None
    )


def build_mod_out(session: Session, mod: Mod, viewer_id: int | None = None) -> ModOut:
    return ModOut(
        **mod.model_dump(),
        tags=[TagOut(**t.model_dump()) for t in mod_tags(session, mod.id)],  # type: ignore[arg-type]
        dependencies=[
            DependencyOut(**d.model_dump())
            for d in mod_dependencies(session, mod.id)  # type: ignore[arg-type]
        ],
        files=[ModFileOut(**f.model_dump()) for f in mod_files(session, mod.id)],  # type: ignore[arg-type]
        is_liked=is_liked(session, mod.id, viewer_id),  # type: ignore[arg-type]
    )


# Tag and dependency links


def _get_or_create_tag(session: Session, name: str, game_id: int) -> Tag:
    slug = slugify(name)
    tag = session.exec(select(Tag).where(Tag.slug == slug, Tag.game_id == game_id)).first()
    if tag is not None:
        return tag
    tag = Tag(name=name.strip(), slug=slug, game_id=game_id)
    try:
        with session.begin_nested():
            session.add(tag)
    except IntegrityError:
        # Created concurrently by another request.
        tag = session.exec(select(Tag).where(Tag.slug == slug, Tag.game_id == game_id)).one()
    return tag


def _link_tags(session: Session, mod_id: int, game_id: int, names: list[str]) -> None:
    linked: set[int] = set()
    for name in names:
        if not name.strip():
            continue
        tag = _get_or_create_tag(session, name, game_id)
        if tag.id in linked:
            continue
        linked.add(tag.id)  # type: ignore[arg-type]
        session.add(ModTag(mod_id=mod_id, tag_id=tag.id))  # type: ignore[arg-type]
    session.flush()


def would_create_cycle(session: Session, mod_id: int, dependency_id: int) -> bool:
    """True when ``mod_id`` is already reachable from ``dependency_id``."""
    stack = [dependency_id]
    seen: set[int] = set()
    while stack:
        current = stack.pop()
        if current == mod_id:
            return True
        if current in seen:
            continue
        seen.add(current)
        stack.extend(
            session.exec(
                select(ModDependency.dependency_id).where(ModDependency.mod_id == current)
            ).all()
        )
    return False


def _link_dependencies(session: Session, mod_id: int, dependency_ids: list[int]) -> None:
    linked: set[int] = set()
    for dep_id in dependency_ids:
        if dep_id == mod_id or dep_id in linked:
            continue
        if session.get(Mod, dep_id) is None:
            continue
        if would_create_cycle(session, mod_id, dep_id):
            logger.info("Skipping dependency %d -> %d: would close a cycle", mod_id, dep_id)
            continue
        linked.add(dep_id)
        session.add(ModDependency(mod_id=mod_id, dependency_id=dep_id))
        # Flush per edge so the next cycle check sees it.
        session.flush()


# Create / update


def create_mod(session: Session, data: ModCreate, owner_id: int, scan_engine: ScanEngine) -> Mod:
    if not data.name.strip():
        raise ValidationError("Mod name is required")
    if not data.version.strip():
        raise ValidationError("Mod version is required")
    game = session.get(Game, data.game_id)
    if game is None:
        raise NotFoundError("Game not found")
    if not game.is_active:
        raise ValidationError("Game is not active")

    try:
        mod = insert_with_slug(
            session,
            Mod,
            data.name,
            lambda slug: Mod(
                name=data.name.strip(),
                slug=slug,
                description=data.description,
                short_description=data.short_description,
                version=data.version.strip(),
                game_version=data.game_version,
                game_id=data.game_id,
                owner_id=owner_id,
                source_website=data.source_website,
                contact_info=data.contact_info,
            ),
            game_id=data.game_id,
        )
        _link_tags(session, mod.id, data.game_id, data.tags)  # type: ignore[arg-type]
        _link_dependencies(session, mod.id, data.dependencies)  # type: ignore[arg-type]
        session.exec(  # type: ignore[call-overload]
            update(Game).where(col(Game.id) == data.game_id).values(mod_count=Game.mod_count + 1)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(mod)
    logger.info("Created mod %d (%s) for game %d", mod.id, mod.slug, mod.game_id)

    scan_engine.submit(mod.id)  # type: ignore[arg-type]
    return mod


def update_mod(session: Session, mod_id: int, data: ModUpdate, user_id: int) -> Mod:
    mod = _get_owned_mod(session, mod_id, user_id, "update")

    changes = data.model_dump(exclude_none=True, exclude={"tags", "dependencies"})
    for field in ("name", "version"):
        if field in changes:
            changes[field] = changes[field].strip()
            if not changes[field]:
                raise ValidationError(f"Mod {field} is required")

    for field, value in changes.items():
        setattr(mod, field, value)
    mod.updated_at = datetime.now(UTC)
    session.add(mod)

    try:
        if data.tags is not None:
            session.exec(delete(ModTag).where(col(ModTag.mod_id) == mod_id))  # type: ignore[call-overload]
            _link_tags(session, mod_id, mod.game_id, data.tags)
        if data.dependencies is not None:
            session.exec(  # type: ignore[call-overload]
                delete(ModDependency).where(col(ModDependency.mod_id) == mod_id)
            )
            _link_dependencies(session, mod_id, data.dependencies)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(mod)
    return mod


# Files


def _file_at(session: Session, mod_id: int, path: str | Path) -> ModFile | None:
    return session.exec(
        select(ModFile).where(ModFile.mod_id == mod_id, ModFile.file_path == str(path))
    ).first()


def upload_file(
    session: Session,
    mod_id: int,
    user_id: int,
    filename: str,
    stream: BinaryIO,
    *,
    is_main: bool,
    blob_store: BlobStore,
    scan_engine: ScanEngine,
) -> ModFile:
    """Store an uploaded file and record it, removing the blob if the record cannot be saved."""
    mod = _get_owned_mod(session, mod_id, user_id, "upload files to")
    if not filename or not is_allowed_mod_file(filename):
        raise ValidationError("File type not allowed")
    if _file_at(session, mod_id, blob_store.path_for(mod_id, filename)) is not None:
        raise ConflictError("A file with this name already exists")

    blob = blob_store.put(mod_id, filename, stream)
    record: ModFile | None = None
    try:
        for attempt in range(1, _UPLOAD_ATTEMPTS + 1):
            try:
                if is_main:
                    session.exec(  # type: ignore[call-overload]
                        update(ModFile)
                        .where(col(ModFile.mod_id) == mod_id, col(ModFile.is_main).is_(True))
                        .values(is_main=False)
                    )
                record = ModFile(
                    mod_id=mod_id,
                    filename=filename,
                    file_path=str(blob.path),
                    file_size=blob.size,
                    mime_type=mime_type_for(filename),
                    hash=blob.sha256,
                    is_main=is_main,
                )
                session.add(record)
                mod.updated_at = datetime.now(UTC)
                session.add(mod)
                session.commit()
                break
            except (IntegrityError, OperationalError):
                # Another upload for this mod claimed the main slot or held the write lock.
                session.rollback()
                if attempt == _UPLOAD_ATTEMPTS:
                    raise
                logger.info("Retrying file insert for mod %d (attempt %d)", mod_id, attempt + 1)
    except Exception:
        session.rollback()
        if _file_at(session, mod_id, blob.path) is None:
            blob_store.delete(blob.path)
            logger.warning("Upload for mod %d rolled back, removed %s", mod_id, blob.path)
        else:
            logger.warning(
                "Upload for mod %d rolled back, %s kept for its record", mod_id, blob.path
            )
        raise

    assert record is not None
    session.refresh(record)
    logger.info("Stored file %d for mod %d (%d bytes)", record.id, mod_id, record.file_size)
    scan_engine.submit(mod_id, file_id=record.id)
    return record


def download_file(session: Session, mod_id: int) -> ModFile:
    """Pick the file to serve (main file, else the oldest) and count the download."""
    get_mod(session, mod_id)
    files = mod_files(session, mod_id)
    if not files:
        raise NotFoundError("No files available for this mod")
    session.exec(  # type: ignore[call-overload]
        update(Mod).where(col(Mod.id) == mod_id).values(downloads=Mod.downloads + 1)
    )
    session.commit()
    return files[0]


# Likes


def like_mod(session: Session, mod_id: int, user_id: int) -> None:
    get_mod(session, mod_id)
    if is_liked(session, mod_id, user_id):
        raise ConflictError("Mod already liked")
    try:
        session.add(ModLike(mod_id=mod_id, user_id=user_id))
        session.flush()
        session.exec(  # type: ignore[call-overload]
            update(Mod).where(col(Mod.id) == mod_id).values(likes=Mod.likes + 1)
        )
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError("Mod already liked") from exc


def unlike_mod(session: Session, mod_id: int, user_id: int) -> None:
    result = session.exec(  # type: ignore[call-overload]
        delete(ModLike).where(col(ModLike.mod_id) == mod_id, col(ModLike.user_id) == user_id)
    )
    if result.rowcount == 0:
        session.rollback()
        raise NotFoundError("Like not found")
    session.exec(  # type: ignore[call-overload]
        update(Mod).where(col(Mod.id) == mod_id).values(likes=Mod.likes - 1)
    )
    session.commit()


# Moderation


def reject_mod(session: Session, mod_id: int, reason: str, moderator: User) -> Mod:
    mod = get_mod(session, mod_id)
    require_capability(session, moderator, Capability.MODERATE_MODS, mod.game_id)
    if not reason.strip():
        raise ValidationError("Rejection reason is required")
    mod.is_rejected = True
    mod.rejection_reason = reason
    mod.updated_at = datetime.now(UTC)
    session.add(mod)
    notification_service.notify_mod_rejected(session, mod.owner_id, mod.name, reason)
    session.commit()
    session.refresh(mod)
    logger.info("Mod %d rejected by user %d", mod_id, moderator.id)
    return mod


def approve_mod(session: Session, mod_id: int, moderator: User) -> Mod:
    mod = get_mod(session, mod_id)
    require_capability(session, moderator, Capability.MODERATE_MODS, mod.game_id)
    mod.is_rejected = False
    mod.rejection_reason = None
    mod.updated_at = datetime.now(UTC)
    session.add(mod)
    notification_service.notify_mod_approved(session, mod.owner_id, mod.name)
    session.commit()
    session.refresh(mod)
    logger.info("Mod %d approved by user %d", mod_id, moderator.id)
    return mod


# Deletion


def delete_mod(session: Session, mod_id: int, user_id: int, blob_store: BlobStore) -> None:
    """Delete a mod, its files on disk, and every row that references it."""
    mod = _get_owned_mod(session, mod_id, user_id, "delete")
    game_id = mod.game_id

    for f in mod_files(session, mod_id):
        try:
            blob_store.delete(f.file_path)
        except OSError:
            logger.warning("Could not remove blob %s for mod %d", f.file_path, mod_id)

    try:
        session.exec(delete(ModFile).where(col(ModFile.mod_id) == mod_id))  # type: ignore[call-overload]
        session.exec(delete(ModTag).where(col(ModTag.mod_id) == mod_id))  # type: ignore[call-overload]
        session.exec(  # type: ignore[call-overload]
            delete(ModDependency).where(
                or_(col(ModDependency.mod_id) == mod_id, col(ModDependency.dependency_id) == mod_id)
            )
        )
        session.exec(delete(ModLike).where(col(ModLike.mod_id) == mod_id))  # type: ignore[call-overload]
        session.exec(delete(Comment).where(col(Comment.mod_id) == mod_id))  # type: ignore[call-overload]
        session.exec(delete(Mod).where(col(Mod.id) == mod_id))  # type: ignore[call-overload]
        session.exec(  # type: ignore[call-overload]
            update(Game)
            .where(col(Game.id) == game_id, col(Game.mod_count) > 0)
            .values(mod_count=Game.mod_count - 1)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    blob_store.delete_mod_dir(mod_id)
    logger.info("Deleted mod %d", mod_id)


# Counters


def rebuild_counters(session: Session) -> tuple[int, int]:
    """Recompute ``mods.likes`` and ``games.mod_count`` from their source rows."""
    like_counts = dict(
        session.exec(select(ModLike.mod_id, func.count()).group_by(col(ModLike.mod_id))).all()
    )
    mods_updated = 0
    for mod in session.exec(select(Mod)).all():
        expected = like_counts.get(mod.id, 0)
        if mod.likes != expected:
            mod.likes = expected
            session.add(mod)
            mods_updated += 1

    mod_counts = dict(
        session.exec(select(Mod.game_id, func.count()).group_by(col(Mod.game_id))).all()
    )
    games_updated = 0
    for game in session.exec(select(Game)).all():
        expected = mod_counts.get(game.id, 0)
        if game.mod_count != expected:
            game.mod_count = expected
            session.add(game)
            games_updated += 1

    session.commit()
    logger.info("Rebuilt counters: %d mods, %d games", mods_updated, games_updated)
    return mods_updated, games_updated
