"""
pkgvault Artifact Store — Packages and their binary attachments.

Handles:
- Package creation and lookup
- Artifact upload (payload fully buffered, stored as-is in one insert)
- Summary lookups that never load the payload column
- Payload lookups, only when the caller asks for them

Payload inclusion is always an opt-in argument or a dedicated method; the
mapped column is deferred with raiseload so accidental loads fail loudly.
"""

from __future__ import annotations

import hashlib
import logging
from typing import List, Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session, undefer

from pkgvault.artifacts.models import Artifact, ArtifactSummary, PackageRecord
from pkgvault.db import models as orm
from pkgvault.db.session import Database
from pkgvault.engine.errors import InvalidInputError, NotFoundError
from pkgvault.engine.logging import log, log_artifact_stored, log_record_operation

logger = logging.getLogger("pkgvault.artifacts.store")

# Width of packages.name and artifacts.name
NAME_MAX_LENGTH = 255


def _name_errors(name: str) -> List[dict]:
    if not name or not name.strip():
        return [{"field": "name", "error": "empty"}]
    if len(name) > NAME_MAX_LENGTH:
        return [{"field": "name", "error": "too_long", "max_length": NAME_MAX_LENGTH}]
    return []


class ArtifactStore:
    """
    CRUD over packages and artifacts.

    One instance is shared by the API; it holds no per-request state. Every
    call opens its own session.
    """

    def __init__(self, database: Database):
        self._db = database

    # -------------------------------------------------------------------
    # Packages
    # -------------------------------------------------------------------

    def create_package(self, name: str, owner_id: int) -> PackageRecord:
        """
        Create a package owned by an existing user.

        Raises InvalidInputError on an empty or over-long name, NotFoundError
        if the owner does not exist.
        """
        errors = _name_errors(name)
        if errors:
            raise InvalidInputError(
                f"Package name must be 1-{NAME_MAX_LENGTH} characters",
                object_ref="packages.create",
                validation_errors=errors,
            )

        def _create(session: Session) -> PackageRecord:
            self._require_user(session, owner_id)
            package = orm.Package(name=name, created_by=owner_id)
            session.add(package)
            session.flush()
            return PackageRecord.model_validate(package)

        record = self._db.run("artifacts.create_package", _create)
        log(log_record_operation("create", "package", record_id=record.id, user_id=owner_id))
        return record

    def get_package(self, package_id: int) -> PackageRecord:
        def _get(session: Session) -> PackageRecord:
            return PackageRecord.model_validate(self._require_package(session, package_id))

        return self._db.run("artifacts.get_package", _get)

    def list_packages(self) -> List[PackageRecord]:
        def _list(session: Session) -> List[PackageRecord]:
            rows = session.scalars(select(orm.Package).order_by(orm.Package.id)).all()
            return [PackageRecord.model_validate(p) for p in rows]

        return self._db.run("artifacts.list_packages", _list)

    # -------------------------------------------------------------------
    # Artifacts
    # -------------------------------------------------------------------

    def put(self, package_id: int, name: str, owner_id: int, payload: bytes) -> Artifact:
        """
        Store a new artifact with its complete payload.

        The payload is written exactly as given. Nothing is persisted when
        validation or the package lookup fails.

        Raises:
            InvalidInputError: name or payload is empty, or name is too long.
            NotFoundError: package_id or owner_id does not resolve.
            StorageFailureError: the database rejected the insert.
        """
        errors = _name_errors(name)
        if not payload:
            errors.append({"field": "payload", "error": "empty"})
        if errors:
            raise InvalidInputError(
                "Artifact name and payload are required",
                object_ref=f"packages.{package_id}.artifacts.put",
                validation_errors=errors,
            )
        payload = bytes(payload)

        def _put(session: Session) -> Artifact:
            self._require_package(session, package_id)
            self._require_user(session, owner_id)
            row = orm.Artifact(
                name=name,
                attachment=payload,
                created_by=owner_id,
                package_id=package_id,
            )
            session.add(row)
            session.flush()
            return self._to_artifact(row, payload)

        artifact = self._db.run("artifacts.put", _put)

        digest = hashlib.sha256(payload).hexdigest()
        logger.info(
            f"Stored artifact {artifact.id} '{name}' in package {package_id} "
            f"({len(payload)} bytes, sha256={digest[:12]})"
        )
        log(log_artifact_stored(
            artifact_id=artifact.id,
            package_id=package_id,
            name=name,
            user_id=owner_id,
            size_bytes=len(payload),
            sha256=digest,
        ))
        return artifact

    def get_summary(self, artifact_id: int) -> ArtifactSummary:
        """Artifact metadata; the payload column is not selected."""
        def _get(session: Session) -> ArtifactSummary:
            row = session.get(orm.Artifact, artifact_id)
            if row is None:
                raise self._artifact_not_found(artifact_id)
            return ArtifactSummary.model_validate(row)

        return self._db.run("artifacts.get_summary", _get)

    def get_with_payload(self, artifact_id: int) -> Artifact:
        """Artifact metadata and payload. Used by single-file download."""
        def _get(session: Session) -> Artifact:
            row = session.scalars(
                select(orm.Artifact)
                .options(undefer(orm.Artifact.attachment))
                .where(orm.Artifact.id == artifact_id)
            ).first()
            if row is None:
                raise self._artifact_not_found(artifact_id)
            return self._to_artifact(row, row.attachment)

        return self._db.run("artifacts.get_with_payload", _get)

    def list_by_package(
        self,
        package_id: int,
        include_payload: bool = False,
    ) -> Union[List[ArtifactSummary], List[Artifact]]:
        """
        All artifacts of a package in insertion order.

        Summaries by default; full records only with include_payload=True
        (bulk archive path).
        """
        def _list(session: Session) -> Sequence:
            self._require_package(session, package_id)
            stmt = (
                select(orm.Artifact)
                .where(orm.Artifact.package_id == package_id)
                .order_by(orm.Artifact.id)
            )
            if include_payload:
                stmt = stmt.options(undefer(orm.Artifact.attachment))
                return [self._to_artifact(r, r.attachment) for r in session.scalars(stmt)]
            return [ArtifactSummary.model_validate(r) for r in session.scalars(stmt)]

        return list(self._db.run("artifacts.list_by_package", _list))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    @staticmethod
    def _to_artifact(row: orm.Artifact, payload: bytes) -> Artifact:
        return Artifact(
            id=row.id,
            name=row.name,
            created_by=row.created_by,
            package_id=row.package_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            payload=bytes(payload),
        )

    @staticmethod
    def _require_package(session: Session, package_id: int) -> orm.Package:
        package = session.get(orm.Package, package_id)
        if package is None:
            raise NotFoundError(
                f"Package {package_id} not found",
                object_ref=f"packages.{package_id}",
                record_type="package",
                record_id=package_id,
            )
        return package

    @staticmethod
    def _require_user(session: Session, user_id: int) -> orm.User:
        user = session.get(orm.User, user_id)
        if user is None or not user.is_active:
            raise NotFoundError(
                f"User {user_id} not found",
                object_ref=f"users.{user_id}",
                record_type="user",
                record_id=user_id,
            )
        return user

    @staticmethod
    def _artifact_not_found(artifact_id: int) -> NotFoundError:
        return NotFoundError(
            f"Artifact {artifact_id} not found",
            object_ref=f"artifacts.{artifact_id}",
            record_type="artifact",
            record_id=artifact_id,
        )

    def __repr__(self) -> str:
        return f"<ArtifactStore db={self._db!r}>"
