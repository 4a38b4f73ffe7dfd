from fastapi import APIRouter, Depends
from sqlmodel import Session

from azurite.auth import generate_token, oauth_authorize_url, oauth_redirect_url
from azurite.database import get_session
from azurite.schemas.common import Envelope, ok
from azurite.schemas.user import (
    AuthResponse,
    LoginRequest,
    OAuthRedirect,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    UserOut,
)
from azurite.services import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Envelope[UserOut], status_code=201)
def register(data: RegisterRequest, session: Session = Depends(get_session)) -> Envelope:
    user = user_service.register(session, data)
    return ok(user, "User registered successfully")


@router.post("/login", response_model=Envelope[AuthResponse])
def login(data: LoginRequest, session: Session = Depends(get_session)) -> Envelope:
    token, user = user_service.login(session, data.email, data.password)
    return ok(AuthResponse(token=token, user=UserOut(**user.model_dump())), "Login successful")


@router.post("/password-reset", response_model=Envelope[None])
def request_password_reset(
    data: PasswordResetRequest, session: Session = Depends(get_session)
) -> Envelope:
    user_service.request_password_reset(session, data.email)
    return ok(message="If the email exists, a password reset link has been sent")


@router.post("/password-reset/confirm", response_model=Envelope[None])
def confirm_password_reset(
    data: PasswordResetConfirm, session: Session = Depends(get_session)
) -> Envelope:
    user_service.reset_password(session, data.token, data.password)
    return ok(message="Password reset successfully")


@router.get("/oauth/{provider}", response_model=Envelope[OAuthRedirect])
def oauth_start(provider: str) -> Envelope:
    return ok(
        OAuthRedirect(
            provider=provider,
            redirect_url=oauth_redirect_url(provider),
            authorize_url=oauth_authorize_url(provider, generate_token()),
        )
    )
