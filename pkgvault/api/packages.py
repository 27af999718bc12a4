"""
Package & artifact endpoints.

Uploads are buffered fully before they reach the store. Downloads send the
stored bytes unchanged; the archive endpoint streams a zip built on the fly.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from pkgvault.api.dependencies import (
    content_disposition,
    get_archive_builder,
    get_config,
    get_store,
    read_upload,
)
from pkgvault.artifacts.archive import ArchiveBuilder
from pkgvault.artifacts.models import ArtifactSummary, PackageRecord
from pkgvault.artifacts.store import ArtifactStore
from pkgvault.engine.config import PlatformConfig
from pkgvault.engine.errors import NotFoundError
from pkgvault.engine.logging import log, log_artifact_downloaded

logger = logging.getLogger("pkgvault.api.packages")

router = APIRouter(prefix="/packages", tags=["packages"])


class PackageCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    created_by: int


@router.post("", response_model=PackageRecord, status_code=201)
def create_package(payload: PackageCreate, store: ArtifactStore = Depends(get_store)):
    return store.create_package(payload.name, payload.created_by)


@router.get("", response_model=List[PackageRecord])
def list_packages(store: ArtifactStore = Depends(get_store)):
    return store.list_packages()


@router.get("/{package_id}", response_model=PackageRecord)
def get_package(package_id: int, store: ArtifactStore = Depends(get_store)):
    return store.get_package(package_id)


@router.post("/{package_id}/artifacts", response_model=ArtifactSummary, status_code=201)
async def upload_artifact(
    package_id: int,
    created_by: int = Form(...),
    name: Optional[str] = Form(None),
    file: UploadFile = File(...),
    store: ArtifactStore = Depends(get_store),
    config: PlatformConfig = Depends(get_config),
):
    """
    Upload one artifact. The display name defaults to the uploaded filename.
    The response never includes the payload.
    """
    data = await read_upload(file, config.uploads.max_upload_bytes)
    artifact = await run_in_threadpool(
        store.put, package_id, name or file.filename or "", created_by, data,
    )
    return artifact.summary()


@router.get("/{package_id}/artifacts", response_model=List[ArtifactSummary])
def list_artifacts(package_id: int, store: ArtifactStore = Depends(get_store)):
    return store.list_by_package(package_id)


@router.get("/{package_id}/artifacts/{artifact_id}")
def download_artifact(
    package_id: int,
    artifact_id: int,
    store: ArtifactStore = Depends(get_store),
):
    """Raw bytes of one artifact with attachment framing."""
    summary = store.get_summary(artifact_id)
    if summary.package_id != package_id:
        raise NotFoundError(
            f"Artifact {artifact_id} not found in package {package_id}",
            object_ref=f"packages.{package_id}.artifacts.{artifact_id}",
            record_type="artifact",
            record_id=artifact_id,
        )
    artifact = store.get_with_payload(artifact_id)
    log(log_artifact_downloaded(artifact.id, package_id, artifact.size_bytes))
    return Response(
        content=artifact.payload,
        media_type="application/octet-stream",
        headers={"Content-Disposition": content_disposition(artifact.name)},
    )


@router.get("/{package_id}/archive")
def download_archive(
    package_id: int,
    store: ArtifactStore = Depends(get_store),
    builder: ArchiveBuilder = Depends(get_archive_builder),
):
    """
    All artifacts of a package as one zip. Lookups and payload validation
    finish before the first byte is sent.
    """
    package = store.get_package(package_id)
    artifacts = store.list_by_package(package_id, include_payload=True)
    chunks = builder.stream_archive(package.name, artifacts)
    filename = builder.archive_filename(package.name)
    logger.info(f"Streaming archive '{filename}' with {len(artifacts)} entries")
    return StreamingResponse(
        chunks,
        media_type="application/zip",
        headers={"Content-Disposition": content_disposition(filename)},
    )
