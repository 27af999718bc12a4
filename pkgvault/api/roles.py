"""Role endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from pkgvault.api.dependencies import get_role_service
from pkgvault.records.models import RoleCreate, RoleRecord, RoleUpdate
from pkgvault.records.service import RoleService

router = APIRouter(prefix="/roles", tags=["roles"])


@router.post("", response_model=RoleRecord, status_code=201)
def create_role(payload: RoleCreate, roles: RoleService = Depends(get_role_service)):
    return roles.create(payload)


@router.get("", response_model=List[RoleRecord])
def list_roles(roles: RoleService = Depends(get_role_service)):
    return roles.list()


@router.get("/{role_id}", response_model=RoleRecord)
def get_role(role_id: int, roles: RoleService = Depends(get_role_service)):
    return roles.get(role_id)


@router.put("/{role_id}", response_model=RoleRecord)
def update_role(role_id: int, payload: RoleUpdate, roles: RoleService = Depends(get_role_service)):
    return roles.update(role_id, payload)


@router.delete("/{role_id}")
def delete_role(role_id: int, roles: RoleService = Depends(get_role_service)):
    cascaded = roles.delete(role_id)
    return {"deleted": True, "id": role_id, "cascaded": cascaded}
