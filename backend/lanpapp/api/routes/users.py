"""User Routes — the caller's profile, user search and public profiles.

Invariants:
    - /me and /search are declared before /{user_id}
    - Public profiles never expose locale or notification preferences
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user
from lanpapp.infrastructure.database import get_db
from lanpapp.models.user import User
from lanpapp.schemas.user import UserUpdate
from lanpapp.services.users import UserProfileService, profile

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    return {"data": profile(user)}


@router.patch("/me")
async def update_me(
    body: UserUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await UserProfileService(db).update_profile(
        user, body.model_dump(exclude_unset=True),
    )
    return {"data": profile(updated)}


@router.get("/search")
async def search_users(
    q: str = Query("", max_length=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    users = await UserProfileService(db).search(q)
    return {"data": [u.summary() for u in users]}


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    found = await UserProfileService(db).get_user(user_id)
    return {"data": {**found.summary(), "created_at": found.created_at.isoformat()}}
