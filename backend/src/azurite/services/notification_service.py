"""In-site notifications and best-effort email delivery."""

import json
import logging
import smtplib
import threading
from email.message import EmailMessage
from typing import Any

from sqlalchemy import func, update
from sqlmodel import Session, col, select

from azurite.config import settings
from azurite.errors import NotFoundError
from azurite.models.notification import Notification, NotificationType
from azurite.models.user import User

logger = logging.getLogger(__name__)

_EMAIL_FOOTER = (
    "\n\nBest regards,\nThe Azurite Team\n\n"
    "You received this email because you have email notifications enabled. "
    "You can change this in your account settings."
)


def email_configured() -> bool:
    return bool(settings.smtp_host and settings.smtp_username)


def send_email(to: str, subject: str, body: str) -> bool:
    """Send a plain-text email. Failures are logged, never raised."""
    if not email_configured():
        logger.debug("SMTP not configured, skipping email to %s", to)
        return False

    msg = EmailMessage()
    msg["From"] = settings.from_email
    msg["To"] = to
    msg["Subject"] = " ".join(subject.splitlines())
    msg.set_content(body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
            smtp.starttls()
            smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError):
        logger.warning("Failed to send email to %s", to, exc_info=True)
        return False
    logger.info("Email sent to %s", to)
    return True


def send_email_in_background(to: str, subject: str, body: str) -> None:
    threading.Thread(target=send_email, args=(to, subject, body), daemon=True).start()


def notify(
    session: Session,
    user_id: int,
    notification_type: NotificationType,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> Notification | None:
    """Record an in-site notification and, if the user opted in, email it.

    The row is added to the caller's session but not committed.
    """
    user = session.get(User, user_id)
    if user is None:
        return None

    notification = None
    if user.notify_in_site:
        notification = Notification(
            user_id=user_id,
            type=notification_type.value,
            title=title,
            message=message,
            data=json.dumps(data or {}),
        )
        session.add(notification)

    if user.notify_email and email_configured():
        body = f"Hello {user.display_name},\n\n{message}{_EMAIL_FOOTER}"
        send_email_in_background(user.email, f"[Azurite] {title}", body)
    return notification


def notify_mod_rejected(session: Session, owner_id: int, mod_name: str, reason: str) -> None:
    notify(
        session,
        owner_id,
        NotificationType.MOD_REJECTED,
        "Mod Rejected",
        f"Your mod '{mod_name}' has been rejected. Reason: {reason}",
        {"mod_name": mod_name, "reason": reason},
    )


def notify_mod_approved(session: Session, owner_id: int, mod_name: str) -> None:
    notify(
        session,
        owner_id,
        NotificationType.MOD_APPROVED,
        "Mod Approved",
        f"Your mod '{mod_name}' has been approved and is now live!",
        {"mod_name": mod_name},
    )


def notify_new_comment(session: Session, owner_id: int, mod_name: str, commenter: str) -> None:
    notify(
        session,
        owner_id,
        NotificationType.NEW_COMMENT,
        "New Comment",
        f"{commenter} commented on your mod '{mod_name}'",
        {"mod_name": mod_name, "commenter_name": commenter},
    )


def notify_game_request(
    session: Session, admin_ids: list[int], requester: str, game_name: str
) -> None:
    for admin_id in admin_ids:
        notify(
            session,
            admin_id,
            NotificationType.GAME_REQUEST,
            "New Game Request",
            f"{requester} has requested to add '{game_name}' to the platform",
            {"requestor_name": requester, "game_name": game_name},
        )


def send_password_reset_email(email: str, token: str) -> None:
    body = (
        "You have requested a password reset for your Azurite account.\n\n"
        "Use the following link to reset your password:\n"
        f"{settings.public_url}/reset-password?token={token}\n\n"
        "If you did not request this, please ignore this email.\n\n"
        "The Azurite Team"
    )
    send_email_in_background(email, "[Azurite] Password Reset Request", body)


def list_notifications(
    session: Session, user_id: int, page: int, per_page: int
) -> tuple[list[Notification], int]:
    total = session.exec(
        select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
    ).one()
    rows = session.exec(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(col(Notification.created_at).desc(), col(Notification.id).desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return list(rows), total


def unread_count(session: Session, user_id: int) -> int:
    return session.exec(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, col(Notification.is_read).is_(False))
    ).one()


def mark_read(session: Session, user_id: int, notification_id: int) -> None:
    notification = session.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    session.add(notification)
    session.commit()


def mark_all_read(session: Session, user_id: int) -> None:
    session.exec(  # type: ignore[call-overload]
        update(Notification)
        .where(Notification.user_id == user_id, col(Notification.is_read).is_(False))
        .values(is_read=True)
    )
    session.commit()
