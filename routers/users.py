"""
User administration APIs (admin only).
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field, field_validator

from database.models import UserRole
from auth.dependencies import Identity, require_operation, get_credential_store
from routers.auth import build_user_info, clean_username
from services.auth_service import CredentialStore
from core.exceptions import ValidationError


router = APIRouter(prefix="/api/users", tags=["users"])


class UserCreate(BaseModel):
    """Admin-provisioned user."""
    username: str = Field(..., max_length=100)
    email: EmailStr
    password: str
    role: UserRole
    examiner_id: Optional[int] = None
    school_id: Optional[int] = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        return clean_username(value)


class UserStatusUpdate(BaseModel):
    """Activate or deactivate a user."""
    is_active: bool


@router.get("", response_model=List[dict])
async def list_users(
    _: Identity = Depends(require_operation("users.list")),
    store: CredentialStore = Depends(get_credential_store)
):
    """List all users ordered by username."""
    return [build_user_info(user) for user in store.list_users()]


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    _: Identity = Depends(require_operation("users.create")),
    store: CredentialStore = Depends(get_credential_store)
):
    """Provision a user with any role."""
    user = store.create_user(
        username=payload.username,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        examiner_id=payload.examiner_id,
        school_id=payload.school_id
    )
    return build_user_info(user)


@router.patch("/{user_id}/status", response_model=dict)
async def set_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    identity: Identity = Depends(require_operation("users.set_active")),
    store: CredentialStore = Depends(get_credential_store)
):
    """Deactivate or reactivate a user. Admins cannot deactivate themselves."""
    if user_id == identity.user_id and not payload.is_active:
        raise ValidationError("You cannot deactivate your own account", fields=["is_active"])
    return build_user_info(store.set_active(user_id, payload.is_active))
