from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: str
    password: str = Field(min_length=8)
    display_name: str = Field(min_length=1, max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetConfirm(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


class UserUpdate(BaseModel):
    display_name: str = Field(min_length=1, max_length=100)
    bio: str = ""
    notify_email: bool = True
    notify_in_site: bool = True


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    display_name: str
    avatar: str
    bio: str
    role: str
    is_active: bool
    email_verified: bool
    notify_email: bool
    notify_in_site: bool
    created_at: datetime
    last_login_at: datetime | None = None


class PublicUserOut(BaseModel):
    id: int
    username: str
    display_name: str
    avatar: str
    bio: str
    role: str
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    user: UserOut


class RoleUpdate(BaseModel):
    role: str


class OAuthRedirect(BaseModel):
    provider: str
    redirect_url: str
    authorize_url: str
