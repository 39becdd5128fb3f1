"""
Authentication endpoints: register, login, logout, verify, me.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError

from database.models import User, UserRole
from auth.dependencies import (
    Identity, require_operation, get_credential_store, get_session_registry, get_token_issuer
)
from auth.security import TokenIssuer
from services.auth_service import CredentialStore, SessionRegistry, normalize_username
from core.exceptions import NotFound, Unauthorized, UnexpectedFailure
from core.logger import logger
import config


router = APIRouter(prefix="/api/auth", tags=["authentication"])


# Request Models
def clean_username(value: str) -> str:
    """Strip surrounding whitespace; a blank username is a validation error."""
    username = normalize_username(value)
    if not username:
        raise ValueError("Username is required")
    return username


class RegisterRequest(BaseModel):
    """Self-service registration request."""
    username: str = Field(..., max_length=100)
    email: EmailStr
    password: str
    role: UserRole = UserRole.EXAMINER
    examiner_id: Optional[int] = None
    school_id: Optional[int] = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        return clean_username(value)


class LoginRequest(BaseModel):
    """Login request."""
    username: str
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        return clean_username(value)


# Response Models
class RegisterResponse(BaseModel):
    """Registered user."""
    id: int
    username: str
    email: str
    role: str


class LoginResponse(BaseModel):
    """Token and user info returned on login."""
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: dict


class LogoutResponse(BaseModel):
    """Logout response."""
    success: bool
    message: str


class VerifyResponse(BaseModel):
    """Token verification result."""
    valid: bool
    user: dict


def build_user_info(user: User) -> dict:
    """Public view of a user record (never includes the password hash)."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role.value,
        "examiner_id": user.examiner_id,
        "school_id": user.school_id,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "last_login": user.last_login.isoformat() if user.last_login else None
    }


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    _: Optional[Identity] = Depends(require_operation("auth.register")),
    store: CredentialStore = Depends(get_credential_store)
):
    """
    Register a new user.
    Fails with 400 on duplicate username/email or a too-short password.
    """
    user = store.create_user(
        username=payload.username,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        examiner_id=payload.examiner_id,
        school_id=payload.school_id
    )
    return RegisterResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role.value
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    _: Optional[Identity] = Depends(require_operation("auth.login")),
    store: CredentialStore = Depends(get_credential_store),
    registry: SessionRegistry = Depends(get_session_registry),
    issuer: TokenIssuer = Depends(get_token_issuer)
):
    """
    Login with username + password.
    Returns a bearer token and user info and sets the session cookie.
    """
    user = store.authenticate(credentials.username, credentials.password)
    if not user:
        logger.warning(
            f"Failed login for '{credentials.username}' from "
            f"{request.client.host if request.client else 'unknown'}"
        )
        raise Unauthorized("Invalid credentials")

    token = issuer.issue(TokenIssuer.claims_for(user))
    session_key, _session = registry.create_session(
        user,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=session_key,
        max_age=config.SESSION_EXPIRE_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=config.ENVIRONMENT == "production"
    )
    logger.info(f"User logged in: {user.username} (role: {user.role.value})")

    return LoginResponse(
        token=token,
        expires_in=issuer.ttl_seconds,
        user=build_user_info(user)
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    response: Response,
    identity: Identity = Depends(require_operation("auth.logout")),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """
    Logout: invalidate the server-side session record.

    Outstanding tokens stay structurally valid until they expire.
    """
    session_key = request.cookies.get(config.SESSION_COOKIE_NAME)
    try:
        if session_key:
            registry.revoke_session(session_key)
        else:
            registry.revoke_user_sessions(identity.user_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to close session for user {identity.user_id}: {e}", exc_info=True)
        raise UnexpectedFailure("Logout failed")

    response.delete_cookie(config.SESSION_COOKIE_NAME)
    logger.info(f"User logged out: {identity.username}")
    return LogoutResponse(success=True, message="Logged out successfully")


@router.get("/verify", response_model=VerifyResponse)
async def verify(
    identity: Identity = Depends(require_operation("auth.verify"))
):
    """Check the presented token and echo its identity."""
    return VerifyResponse(valid=True, user=identity.to_dict())


@router.get("/me", response_model=dict)
async def get_current_user_info(
    identity: Identity = Depends(require_operation("auth.me")),
    store: CredentialStore = Depends(get_credential_store)
):
    """Get current user record."""
    user = store.find_by_username(identity.username)
    if not user or user.id != identity.user_id:
        raise NotFound("User not found")
    return build_user_info(user)
