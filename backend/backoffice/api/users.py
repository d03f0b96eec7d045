"""User directory endpoints. Accounts are provisioned elsewhere; this manages profile and role."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backoffice.core.deps import get_current_user, get_store, require_role
from backoffice.models.activity import ActivityAction, EntityType
from backoffice.models.user import RoleType, User
from backoffice.repositories.base import BackOfficeStore
from backoffice.schemas.activity import ActivityLogEntryResponse, ActivityLogResponse
from backoffice.schemas.auth import CurrentUser
from backoffice.schemas.user import (
    UserListResponse,
    UserProfileUpdate,
    UserResponse,
    UserRoleUpdate,
)
from backoffice.services.activity_log import ActivityLog

router = APIRouter(prefix="/users", tags=["users"])


async def _get_or_404(store: BackOfficeStore, user_id: UUID) -> User:
    user = await store.get_user(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    search: str | None = None,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    """List users with pagination and optional name or username search."""
    items, total = await store.list_users(offset=(page - 1) * size, limit=size, search=search)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in items],
        total=total,
        page=page,
        size=size,
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    user = await _get_or_404(store, current_user.id)
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    body: UserProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    """Update the caller's own name or email."""
    user = await _get_or_404(store, current_user.id)
    updates = body.model_dump(exclude_unset=True)

    if "email" in updates and updates["email"] != user.email:
        existing = await store.find_user_by_email(updates["email"])
        if existing and existing.id != user.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered",
            )

    changed = [field for field, value in updates.items() if getattr(user, field) != value]
    for field in changed:
        setattr(user, field, updates[field])

    if changed:
        await ActivityLog(store).record(
            EntityType.USER,
            user.id,
            current_user,
            ActivityAction.UPDATE,
            f"Updated {', '.join(changed)}",
        )
    await store.commit()
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    user = await _get_or_404(store, user_id)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}/role", response_model=UserResponse)
async def edit_user_role(
    user_id: UUID,
    body: UserRoleUpdate,
    current_user: CurrentUser = Depends(require_role("admin")),
    store: BackOfficeStore = Depends(get_store),
):
    """Change a user's role (admin only)."""
    try:
        role = RoleType(body.role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid role",
        )

    user = await _get_or_404(store, user_id)
    if user.role == role:
        return UserResponse.model_validate(user)

    previous = user.role
    user.role = role
    await ActivityLog(store).record(
        EntityType.USER,
        user.id,
        current_user,
        ActivityAction.ROLE_CHANGE,
        f"role {previous.value} -> {role.value}",
    )
    await store.commit()
    return UserResponse.model_validate(user)


@router.get("/{user_id}/activity", response_model=ActivityLogResponse)
async def get_user_activity(
    user_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    await _get_or_404(store, user_id)
    entries = await ActivityLog(store).history(EntityType.USER, user_id)
    return ActivityLogResponse(
        items=[ActivityLogEntryResponse.model_validate(e) for e in entries],
        count=len(entries),
    )
