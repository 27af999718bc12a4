"""Post and profile endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from pkgvault.api.dependencies import get_post_service, get_profile_service
from pkgvault.records.models import (
    PostCreate,
    PostRecord,
    PostUpdate,
    ProfileCreate,
    ProfileRecord,
    ProfileUpdate,
)
from pkgvault.records.service import PostService, ProfileService

router = APIRouter(tags=["posts"])


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

@router.post("/posts", response_model=PostRecord, status_code=201)
def create_post(payload: PostCreate, posts: PostService = Depends(get_post_service)):
    return posts.create(payload)


@router.get("/posts", response_model=List[PostRecord])
def list_posts(user_id: Optional[int] = None, posts: PostService = Depends(get_post_service)):
    return posts.list(user_id=user_id)


@router.get("/posts/{post_id}", response_model=PostRecord)
def get_post(post_id: int, posts: PostService = Depends(get_post_service)):
    return posts.get(post_id)


@router.put("/posts/{post_id}", response_model=PostRecord)
def update_post(post_id: int, payload: PostUpdate, posts: PostService = Depends(get_post_service)):
    return posts.update(post_id, payload)


@router.delete("/posts/{post_id}")
def delete_post(post_id: int, posts: PostService = Depends(get_post_service)):
    posts.delete(post_id)
    return {"deleted": True, "id": post_id}


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

@router.post("/profiles", response_model=ProfileRecord, status_code=201)
def create_profile(payload: ProfileCreate, profiles: ProfileService = Depends(get_profile_service)):
    return profiles.create(payload)


@router.get("/profiles/{profile_id}", response_model=ProfileRecord)
def get_profile(profile_id: int, profiles: ProfileService = Depends(get_profile_service)):
    return profiles.get(profile_id)


@router.put("/profiles/{profile_id}", response_model=ProfileRecord)
def update_profile(
    profile_id: int,
    payload: ProfileUpdate,
    profiles: ProfileService = Depends(get_profile_service),
):
    return profiles.update(profile_id, payload)


@router.delete("/profiles/{profile_id}")
def delete_profile(profile_id: int, profiles: ProfileService = Depends(get_profile_service)):
    profiles.delete(profile_id)
    return {"deleted": True, "id": profile_id}
