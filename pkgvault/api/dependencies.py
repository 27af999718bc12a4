"""
pkgvault API dependencies — Resolve shared components from app.state.

create_app() stores one instance of each component on app.state; routes
receive them through these functions so tests can swap them with
app.dependency_overrides.
"""

from __future__ import annotations

import mimetypes
from urllib.parse import quote

from fastapi import HTTPException, Request, UploadFile

from pkgvault.artifacts.archive import ArchiveBuilder
from pkgvault.artifacts.store import ArtifactStore
from pkgvault.engine.config import PlatformConfig
from pkgvault.records.service import PostService, ProfileService, RoleService, UserService


def get_config(request: Request) -> PlatformConfig:
    return request.app.state.config


def get_store(request: Request) -> ArtifactStore:
    return request.app.state.store


def get_archive_builder(request: Request) -> ArchiveBuilder:
    return request.app.state.archive_builder


def get_user_service(request: Request) -> UserService:
    return request.app.state.users


def get_role_service(request: Request) -> RoleService:
    return request.app.state.roles


def get_post_service(request: Request) -> PostService:
    return request.app.state.posts


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profiles


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """
    Buffer an upload fully, rejecting it with 413 once it passes max_bytes.
    """
    chunks = []
    received = 0
    while True:
        chunk = await file.read(64 * 1024)
        if not chunk:
            break
        received += len(chunk)
        if received > max_bytes:
            raise HTTPException(
                status_code=413,
                detail={
                    "error": "payload_too_large",
                    "message": f"Upload exceeds {max_bytes // (1024 * 1024)} MB limit",
                },
            )
        chunks.append(chunk)
    return b"".join(chunks)


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename."""
    mime, _ = mimetypes.guess_type(filename)
    return mime or "application/octet-stream"


def content_disposition(filename: str) -> str:
    """Attachment header value; RFC 5987 encoding when the name is not plain ASCII."""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'
