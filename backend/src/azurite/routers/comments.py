from fastapi import APIRouter, Depends
from sqlmodel import Session

from azurite.database import get_session
from azurite.models.user import User
from azurite.routers.deps import Paging, get_current_user, get_paging, require_moderator
from azurite.schemas.comment import CommentCreate, CommentModerate, CommentOut, CommentUpdate
from azurite.schemas.common import Envelope, Page, ok
from azurite.services import comment_service, mod_service

router = APIRouter(tags=["comments"])


@router.get("/mods/{mod_id}/comments", response_model=Envelope[Page[CommentOut]])
def list_comments(
    mod_id: int,
    paging: Paging = Depends(get_paging),
    session: Session = Depends(get_session),
) -> Envelope:
    mod_service.get_mod(session, mod_id)
    comments, total = comment_service.list_comments(session, mod_id, paging.page, paging.per_page)
    return ok(Page.build(comments, paging.page, paging.per_page, total))


@router.post("/mods/{mod_id}/comments", response_model=Envelope[CommentOut], status_code=201)
def create_comment(
    mod_id: int,
    data: CommentCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    comment = comment_service.create_comment(session, mod_id, data, user)
    return ok(CommentOut(**comment.model_dump(), username=user.username), "Comment posted")


@router.put("/comments/{comment_id}", response_model=Envelope[CommentOut])
def update_comment(
    comment_id: int,
    data: CommentUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    comment = comment_service.update_comment(session, comment_id, data.content, user)
    return ok(CommentOut(**comment.model_dump(), username=user.username), "Comment updated")


@router.delete("/comments/{comment_id}", response_model=Envelope[None])
def delete_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    comment_service.delete_comment(session, comment_id, user)
    return ok(message="Comment deleted")


@router.post("/comments/{comment_id}/moderate", response_model=Envelope[CommentOut])
def moderate_comment(
    comment_id: int,
    data: CommentModerate,
    _moderator: User = Depends(require_moderator),
    session: Session = Depends(get_session),
) -> Envelope:
    comment = comment_service.moderate_comment(session, comment_id, data.is_active)
    return ok(CommentOut(**comment.model_dump()), "Comment moderated")
