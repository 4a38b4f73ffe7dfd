from datetime import UTC, datetime

from sqlmodel import Session, col, func, select

from azurite.errors import NotFoundError, PermissionDeniedError, ValidationError
from azurite.models.comment import Comment
from azurite.models.mod import Mod
from azurite.models.user import Role, User
from azurite.schemas.comment import CommentCreate, CommentOut
from azurite.services import notification_service


def _comment_out(comment: Comment, usernames: dict[int, str]) -> CommentOut:
    return CommentOut(**comment.model_dump(), username=usernames.get(comment.user_id, ""))


def get_comment(session: Session, comment_id: int) -> Comment:
    comment = session.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def create_comment(session: Session, mod_id: int, data: CommentCreate, author: User) -> Comment:
    mod = session.get(Mod, mod_id)
    if mod is None:
        raise NotFoundError("Mod not found")
    if not data.content.strip():
        raise ValidationError("Comment content is required")
    if data.parent_id is not None:
        parent = session.get(Comment, data.parent_id)
        if parent is None:
            raise NotFoundError("Parent comment not found")
        if parent.mod_id != mod_id:
            raise ValidationError("Parent comment belongs to different mod")

    comment = Comment(
        mod_id=mod_id,
        user_id=author.id,  # type: ignore[arg-type]
        content=data.content,
        parent_id=data.parent_id,
    )
    session.add(comment)
    if mod.owner_id != author.id:
        notification_service.notify_new_comment(
            session, mod.owner_id, mod.name, author.display_name or author.username
        )
    session.commit()
    session.refresh(comment)
    return comment


def list_comments(
    session: Session, mod_id: int, page: int, per_page: int
) -> tuple[list[CommentOut], int]:
    """Active top-level comments, newest first, each with its active direct replies."""
    top_level = [
        Comment.mod_id == mod_id,
        col(Comment.is_active).is_(True),
        col(Comment.parent_id).is_(None),
    ]
    total = session.exec(select(func.count()).select_from(Comment).where(*top_level)).one()
    comments = session.exec(
        select(Comment)
        .where(*top_level)
        .order_by(col(Comment.created_at).desc(), col(Comment.id).desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()

    parent_ids = [c.id for c in comments]
    replies = session.exec(
        select(Comment)
        .where(col(Comment.parent_id).in_(parent_ids), col(Comment.is_active).is_(True))
        .order_by(col(Comment.created_at), col(Comment.id))
    ).all()

    user_ids = {c.user_id for c in comments} | {r.user_id for r in replies}
    usernames = dict(
        session.exec(select(User.id, User.username).where(col(User.id).in_(user_ids))).all()
    )

    by_parent: dict[int, list[CommentOut]] = {}
    for reply in replies:
        by_parent.setdefault(reply.parent_id, []).append(_comment_out(reply, usernames))  # type: ignore[arg-type]

    result = []
    for c in comments:
        out = _comment_out(c, usernames)
        out.replies = by_parent.get(c.id, [])  # type: ignore[arg-type]
        result.append(out)
    return result, total


def update_comment(session: Session, comment_id: int, content: str, user: User) -> Comment:
    comment = get_comment(session, comment_id)
    if comment.user_id != user.id:
        raise PermissionDeniedError("Not authorized to update this comment")
    if not content.strip():
        raise ValidationError("Comment content is required")
    comment.content = content
    comment.updated_at = datetime.now(UTC)
    session.add(comment)
    session.commit()
    session.refresh(comment)
    return comment


def delete_comment(session: Session, comment_id: int, user: User) -> None:
    """Soft delete by the author or an admin."""
    comment = get_comment(session, comment_id)
    if comment.user_id != user.id and user.role != Role.ADMIN.value:
        raise PermissionDeniedError("Not authorized to delete this comment")
    comment.is_active = False
    comment.updated_at = datetime.now(UTC)
    session.add(comment)
    session.commit()


def moderate_comment(session: Session, comment_id: int, is_active: bool) -> Comment:
    comment = get_comment(session, comment_id)
    comment.is_active = is_active
    comment.updated_at = datetime.now(UTC)
    session.add(comment)
    session.commit()
    session.refresh(comment)
    return comment
