"""Users API: CRUD for users and their default display timezone."""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from duosync.api.dependencies import get_session
from duosync.api.schemas.users import UserCreate, UserResponse, UserUpdate
from duosync.infra.database.repositories import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def list_users(
    skip: int = 0,
    limit: int = Query(100, le=500),
    session: AsyncSession = Depends(get_session),
):
    return await UserRepository(session).get_all(skip=skip, limit=limit)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
):
    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreate,
    session: AsyncSession = Depends(get_session),
):
    repo = UserRepository(session)
    if body.email and await repo.get_by_email(body.email) is not None:
        raise HTTPException(status_code=409, detail="A user with this email already exists")
    user = await repo.create(body.model_dump())
    logger.info("Users: created user %s", user.id)
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: UserUpdate,
    session: AsyncSession = Depends(get_session),
):
    repo = UserRepository(session)
    user = await repo.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    # name and timezone are NOT NULL; only email can be cleared
    data = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "email"}
    if data.get("email") and data["email"] != user.email:
        existing = await repo.get_by_email(data["email"])
        if existing is not None and existing.id != user_id:
            raise HTTPException(status_code=409, detail="A user with this email already exists")
    if data:
        user = await repo.update(user_id, data)
    return user


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
):
    if not await UserRepository(session).delete(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return Response(status_code=204)
