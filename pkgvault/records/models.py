"""
pkgvault Record shapes — Pydantic request/response models for the CRUD surface.

Users, roles, user-role links, posts and profiles. Password hashes and
profile image bytes never appear in a read shape.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserCreate(BaseModel):
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=128)


class UserUpdate(BaseModel):
    firstname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    lastname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)


class UserRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    firstname: str
    lastname: str
    email: str
    is_active: bool
    profile_mime_type: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileImage(BaseModel):
    """A user's stored profile image."""

    user_id: int
    mime_type: str
    data: bytes = Field(repr=False)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=255)


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)


class RoleRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleAssignment(BaseModel):
    role_ids: List[int] = Field(min_length=1)


class UserRoleRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    role_id: int
    is_active: bool


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    user_id: int


class PostUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)


class PostRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    user_id: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class ProfileCreate(BaseModel):
    user_id: int
    bio: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=255)


class ProfileUpdate(BaseModel):
    bio: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=255)


class ProfileRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    bio: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
