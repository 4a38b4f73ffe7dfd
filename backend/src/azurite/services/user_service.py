import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from azurite.auth import create_access_token, generate_token, hash_password, verify_password
from azurite.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from azurite.models.user import PasswordResetToken, Role, User
from azurite.schemas.user import RegisterRequest, UserUpdate
from azurite.services import notification_service
from azurite.utils.text import is_valid_email, is_valid_username

logger = logging.getLogger(__name__)

RESET_TOKEN_TTL = timedelta(hours=1)


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_username(session: Session, username: str) -> User:
    user = session.exec(select(User).where(User.username == username)).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def register(session: Session, data: RegisterRequest) -> User:
    email = data.email.strip().lower()
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")
    if not is_valid_username(data.username):
        raise ValidationError(
            "Username must be 3-50 characters of letters, numbers, underscores or hyphens"
        )
    taken = session.exec(
        select(User).where(or_(User.email == email, User.username == data.username))
    ).first()
    if taken:
        raise ConflictError("User with this email or username already exists")

    user = User(
        username=data.username,
        email=email,
        password_hash=hash_password(data.password),
        display_name=data.display_name.strip(),
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError("User with this email or username already exists") from exc
    session.refresh(user)
    logger.info("Registered user %d (%s)", user.id, user.username)
    return user


def login(session: Session, email: str, password: str) -> tuple[str, User]:
    user = session.exec(select(User).where(User.email == email.strip().lower())).first()
    if user is None:
        raise AuthenticationError("Invalid credentials")
    if not user.password_hash:
        raise ValidationError(
            "This account uses OAuth authentication. Please sign in with your OAuth provider"
        )
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is disabled")

    user.last_login_at = datetime.now(UTC)
    session.add(user)
    session.commit()
    session.refresh(user)
    return create_access_token(user), user


def update_profile(session: Session, user: User, data: UserUpdate) -> User:
    user.display_name = data.display_name.strip()
    user.bio = data.bio
    user.notify_email = data.notify_email
    user.notify_in_site = data.notify_in_site
    user.updated_at = datetime.now(UTC)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def change_password(session: Session, user: User, current: str, new: str) -> None:
    if not user.password_hash or not verify_password(current, user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    user.password_hash = hash_password(new)
    user.updated_at = datetime.now(UTC)
    session.add(user)
    session.commit()


def request_password_reset(session: Session, email: str) -> None:
    """Issue a one-hour reset token. Unknown addresses succeed silently."""
    user = session.exec(select(User).where(User.email == email.strip().lower())).first()
    if user is None:
        return
    token = PasswordResetToken(
        user_id=user.id,  # type: ignore[arg-type]
        token=generate_token(),
        expires_at=datetime.now(UTC) + RESET_TOKEN_TTL,
    )
    session.add(token)
    session.commit()
    notification_service.send_password_reset_email(user.email, token.token)


def reset_password(session: Session, token: str, new_password: str) -> None:
    """Consume a reset token and set the new password in a single transaction."""
    now = datetime.now(UTC)
    try:
        consumed = session.exec(  # type: ignore[call-overload]
            update(PasswordResetToken)
            .where(
                PasswordResetToken.token == token,
                col(PasswordResetToken.used).is_(False),
                col(PasswordResetToken.expires_at) > now,
            )
            .values(used=True)
            .returning(PasswordResetToken.user_id)
            .execution_options(synchronize_session=False)
        ).first()
        if consumed is None:
            raise ValidationError("Invalid or expired reset token")
        session.exec(  # type: ignore[call-overload]
            update(User)
            .where(col(User.id) == consumed[0])
            .values(password_hash=hash_password(new_password), updated_at=now)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Password reset for user %d", consumed[0])


def list_users(session: Session, page: int, per_page: int) -> tuple[list[User], int]:
    total = session.exec(select(func.count()).select_from(User)).one()
    users = session.exec(
        select(User)
        .order_by(col(User.created_at).desc(), col(User.id).desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()
    return list(users), total


def set_role(session: Session, user_id: int, role: str) -> User:
    if role not in {r.value for r in Role}:
        raise ValidationError(f"Invalid role: {role}")
    user = get_user(session, user_id)
    user.role = role
    user.updated_at = datetime.now(UTC)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def set_active(session: Session, user_id: int, active: bool) -> User:
    user = get_user(session, user_id)
    user.is_active = active
    user.updated_at = datetime.now(UTC)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("User %d %s", user_id, "activated" if active else "deactivated")
    return user
