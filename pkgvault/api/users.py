"""User endpoints — CRUD, soft delete, profile image, role assignment."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, Response, UploadFile
from starlette.concurrency import run_in_threadpool

from pkgvault.api.dependencies import detect_mime_type, get_config, get_user_service, read_upload
from pkgvault.engine.config import PlatformConfig
from pkgvault.records.models import (
    RoleAssignment,
    RoleRecord,
    UserCreate,
    UserRecord,
    UserRoleRecord,
    UserUpdate,
)
from pkgvault.records.service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRecord, status_code=201)
def create_user(payload: UserCreate, users: UserService = Depends(get_user_service)):
    return users.create(payload)


@router.get("", response_model=List[UserRecord])
def list_users(users: UserService = Depends(get_user_service)):
    return users.list()


@router.get("/{user_id}", response_model=UserRecord)
def get_user(user_id: int, users: UserService = Depends(get_user_service)):
    return users.get(user_id)


@router.put("/{user_id}", response_model=UserRecord)
def update_user(user_id: int, payload: UserUpdate, users: UserService = Depends(get_user_service)):
    return users.update(user_id, payload)


@router.delete("/{user_id}")
def delete_user(user_id: int, users: UserService = Depends(get_user_service)):
    """Soft delete; deactivates the user's posts, profiles and role links too."""
    cascaded = users.delete(user_id)
    return {"deleted": True, "id": user_id, "cascaded": cascaded}


@router.put("/{user_id}/profile-image", response_model=UserRecord)
async def upload_profile_image(
    user_id: int,
    file: UploadFile = File(...),
    users: UserService = Depends(get_user_service),
    config: PlatformConfig = Depends(get_config),
):
    data = await read_upload(file, config.uploads.max_upload_bytes)
    mime_type = file.content_type or detect_mime_type(file.filename or "")
    return await run_in_threadpool(users.set_profile_image, user_id, data, mime_type)


@router.get("/{user_id}/profile-image")
def get_profile_image(user_id: int, users: UserService = Depends(get_user_service)):
    image = users.get_profile_image(user_id)
    return Response(content=image.data, media_type=image.mime_type)


@router.post("/{user_id}/roles", response_model=List[UserRoleRecord])
def assign_roles(
    user_id: int,
    payload: RoleAssignment,
    users: UserService = Depends(get_user_service),
):
    return users.assign_roles(user_id, payload.role_ids)


@router.get("/{user_id}/roles", response_model=List[RoleRecord])
def list_user_roles(user_id: int, users: UserService = Depends(get_user_service)):
    return users.list_roles(user_id)


@router.delete("/{user_id}/roles/{role_id}")
def revoke_role(user_id: int, role_id: int, users: UserService = Depends(get_user_service)):
    users.revoke_role(user_id, role_id)
    return {"revoked": True, "user_id": user_id, "role_id": role_id}
