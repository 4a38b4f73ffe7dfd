from fastapi import APIRouter, Depends
from sqlmodel import Session

from azurite.database import get_session
from azurite.models.user import User
from azurite.routers.deps import Paging, get_current_user, get_paging
from azurite.schemas.admin import NotificationOut
from azurite.schemas.common import Envelope, Page, ok
from azurite.schemas.mod import ModSummary
from azurite.schemas.user import ChangePasswordRequest, PublicUserOut, UserOut, UserUpdate
from azurite.services import listing, notification_service, user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=Envelope[UserOut])
def get_me(user: User = Depends(get_current_user)) -> Envelope:
    return ok(user)


@router.put("/me", response_model=Envelope[UserOut])
def update_me(
    data: UserUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    return ok(user_service.update_profile(session, user, data), "Profile updated successfully")


@router.post("/me/password", response_model=Envelope[None])
def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    user_service.change_password(session, user, data.current_password, data.new_password)
    return ok(message="Password updated successfully")


@router.get("/me/mods", response_model=Envelope[Page[ModSummary]])
def list_my_mods(
    paging: Paging = Depends(get_paging),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    result = listing.list_owner_mods(session, user.id, paging.page, paging.per_page)  # type: ignore[arg-type]
    return ok(Page.build(result.mods, result.page, result.per_page, result.total))


@router.get("/me/notifications", response_model=Envelope[Page[NotificationOut]])
def list_notifications(
    paging: Paging = Depends(get_paging),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    rows, total = notification_service.list_notifications(
        session, user.id, paging.page, paging.per_page  # type: ignore[arg-type]
    )
    return ok(Page.build(rows, paging.page, paging.per_page, total))


@router.get("/me/notifications/unread-count", response_model=Envelope[int])
def unread_notifications(
    user: User = Depends(get_current_user), session: Session = Depends(get_session)
) -> Envelope:
    return ok(notification_service.unread_count(session, user.id))  # type: ignore[arg-type]


@router.post("/me/notifications/read-all", response_model=Envelope[None])
def mark_all_notifications_read(
    user: User = Depends(get_current_user), session: Session = Depends(get_session)
) -> Envelope:
    notification_service.mark_all_read(session, user.id)  # type: ignore[arg-type]
    return ok(message="All notifications marked as read")


@router.post("/me/notifications/{notification_id}/read", response_model=Envelope[None])
def mark_notification_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Envelope:
    notification_service.mark_read(session, user.id, notification_id)  # type: ignore[arg-type]
    return ok(message="Notification marked as read")


@router.get("/{username}", response_model=Envelope[PublicUserOut])
def get_user(username: str, session: Session = Depends(get_session)) -> Envelope:
    return ok(user_service.get_user_by_username(session, username))
