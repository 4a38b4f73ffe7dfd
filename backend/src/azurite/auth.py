"""Password hashing, access tokens and OAuth redirect construction."""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import bcrypt
from jose import JWTError, jwt

from azurite.config import settings
from azurite.errors import AuthenticationError, ValidationError
from azurite.models.user import User

ALGORITHM = "HS256"
ISSUER = "azurite"
ACCESS_TOKEN_TTL = timedelta(hours=24)

OAUTH_PROVIDERS: dict[str, dict[str, str]] = {
    "github": {
        "authorize_url": "https://github.com/login/oauth/authorize",
        "scope": "user:email",
    },
    "google": {
        "authorize_url": "https://accounts.google.com/o/oauth2/auth",
        "scope": "openid profile email",
    },
    "discord": {
        "authorize_url": "https://discord.com/api/oauth2/authorize",
        "scope": "identify email",
    },
}


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user: User, now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    claims = {
        "user_id": user.id,
        "username": user.username,
        "role": user.role,
        "iat": now,
        "exp": now + ACCESS_TOKEN_TTL,
        "iss": ISSUER,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM], issuer=ISSUER)
    except JWTError as exc:
        raise AuthenticationError("Invalid token") from exc
    if not isinstance(claims.get("user_id"), int):
        raise AuthenticationError("Invalid token")
    return claims


def generate_token() -> str:
    """Random 64-character hex token for password resets and OAuth state."""
    return secrets.token_hex(32)


def oauth_redirect_url(provider: str) -> str:
    if provider not in OAUTH_PROVIDERS:
        raise ValidationError(f"Unsupported provider: {provider}")
    return f"{settings.public_url}/api/auth/callback/{provider}"


def oauth_authorize_url(provider: str, state: str) -> str:
    redirect = oauth_redirect_url(provider)
    client_id = getattr(settings, f"{provider}_client_id")
    if not client_id:
        raise ValidationError(f"{provider} authentication is not configured")
    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": redirect,
            "response_type": "code",
            "scope": OAUTH_PROVIDERS[provider]["scope"],
            "state": state,
        }
    )
    return f"{OAUTH_PROVIDERS[provider]['authorize_url']}?{query}"
