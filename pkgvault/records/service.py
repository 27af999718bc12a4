"""
pkgvault Record Services — CRUD and soft delete for users, roles, posts, profiles.

Soft delete sets is_active=False. Deleting a user cascades to that user's
posts, profiles and role links; deleting a role cascades to its links. The
cascades are plain sequential UPDATE statements in the same transaction.
Inactive rows behave as missing for every read.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import select, update
from sqlalchemy.orm import Session, undefer

from pkgvault.db import models as orm
from pkgvault.db.session import Database
from pkgvault.engine.errors import InvalidInputError, NotFoundError
from pkgvault.engine.logging import log, log_record_operation
from pkgvault.records.models import (
    PostCreate,
    PostRecord,
    PostUpdate,
    ProfileCreate,
    ProfileImage,
    ProfileRecord,
    ProfileUpdate,
    RoleCreate,
    RoleRecord,
    RoleUpdate,
    UserCreate,
    UserRecord,
    UserRoleRecord,
    UserUpdate,
)
from pkgvault.records.security import hash_password

logger = logging.getLogger("pkgvault.records.service")


def _require_active(session: Session, model: Type[Any], record_id: int, record_type: str) -> Any:
    row = session.get(model, record_id)
    if row is None or not row.is_active:
        raise NotFoundError(
            f"{record_type.capitalize()} {record_id} not found",
            object_ref=f"{model.__tablename__}.{record_id}",
            record_type=record_type,
            record_id=record_id,
        )
    return row


def _apply_changes(row: Any, changes: Dict[str, Any]) -> List[str]:
    changed = []
    for field, value in changes.items():
        if getattr(row, field) != value:
            setattr(row, field, value)
            changed.append(field)
    return changed


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserService:
    """Users, their profile image and their role assignments."""

    def __init__(self, database: Database, password_rounds: int = 12):
        self._db = database
        self._password_rounds = password_rounds

    def create(self, data: UserCreate) -> UserRecord:
        def _create(session: Session) -> UserRecord:
            self._check_email_free(session, data.email)
            user = orm.User(
                firstname=data.firstname,
                lastname=data.lastname,
                email=data.email,
                password_hash=hash_password(data.password, self._password_rounds),
                is_active=True,
            )
            session.add(user)
            session.flush()
            return UserRecord.model_validate(user)

        record = self._db.run("users.create", _create)
        log(log_record_operation("create", "user", record_id=record.id))
        return record

    def get(self, user_id: int) -> UserRecord:
        def _get(session: Session) -> UserRecord:
            return UserRecord.model_validate(_require_active(session, orm.User, user_id, "user"))

        return self._db.run("users.get", _get)

    def list(self) -> List[UserRecord]:
        def _list(session: Session) -> List[UserRecord]:
            rows = session.scalars(
                select(orm.User).where(orm.User.is_active.is_(True)).order_by(orm.User.id)
            )
            return [UserRecord.model_validate(u) for u in rows]

        return self._db.run("users.list", _list)

    def update(self, user_id: int, data: UserUpdate) -> UserRecord:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        password = changes.pop("password", None)

        def _update(session: Session) -> Tuple[UserRecord, List[str]]:
            user = _require_active(session, orm.User, user_id, "user")
            if "email" in changes and changes["email"] != user.email:
                self._check_email_free(session, changes["email"])
            changed = _apply_changes(user, changes)
            if password is not None:
                user.password_hash = hash_password(password, self._password_rounds)
                changed.append("password")
            session.flush()
            return UserRecord.model_validate(user), changed

        record, changed = self._db.run("users.update", _update)
        log(log_record_operation("update", "user", record_id=user_id, fields_changed=changed))
        return record

    def delete(self, user_id: int) -> Dict[str, int]:
        """Soft delete a user and everything the user owns. Returns cascade counts."""
        def _delete(session: Session) -> Dict[str, int]:
            user = _require_active(session, orm.User, user_id, "user")
            user.is_active = False
            cascaded = {}
            for model in (orm.Post, orm.Profile, orm.UserRole):
                result = session.execute(
                    update(model)
                    .where(model.user_id == user_id, model.is_active.is_(True))
                    .values(is_active=False)
                )
                cascaded[model.__tablename__] = result.rowcount
            return cascaded

        cascaded = self._db.run("users.delete", _delete)
        logger.info(f"Soft-deleted user {user_id} (cascaded: {cascaded})")
        log(log_record_operation("delete", "user", record_id=user_id, cascaded=cascaded))
        return cascaded

    # -------------------------------------------------------------------
    # Profile image
    # -------------------------------------------------------------------

    def set_profile_image(self, user_id: int, data: bytes, mime_type: str) -> UserRecord:
        if not data:
            raise InvalidInputError(
                "Profile image must not be empty",
                object_ref=f"users.{user_id}.profile_image",
                validation_errors=[{"field": "file", "error": "empty"}],
            )

        def _set(session: Session) -> UserRecord:
            user = _require_active(session, orm.User, user_id, "user")
            user.profile_image = bytes(data)
            user.profile_mime_type = mime_type
            session.flush()
            return UserRecord.model_validate(user)

        record = self._db.run("users.set_profile_image", _set)
        log(log_record_operation(
            "update", "user", record_id=user_id, fields_changed=["profile_image", "profile_mime_type"],
        ))
        return record

    def get_profile_image(self, user_id: int) -> ProfileImage:
        def _get(session: Session) -> ProfileImage:
            user = session.scalars(
                select(orm.User)
                .options(undefer(orm.User.profile_image))
                .where(orm.User.id == user_id, orm.User.is_active.is_(True))
            ).first()
            if user is None or user.profile_image is None:
                raise NotFoundError(
                    f"No profile image for user {user_id}",
                    object_ref=f"users.{user_id}.profile_image",
                    record_type="profile_image",
                    record_id=user_id,
                )
            return ProfileImage(
                user_id=user.id,
                mime_type=user.profile_mime_type or "application/octet-stream",
                data=user.profile_image,
            )

        return self._db.run("users.get_profile_image", _get)

    # -------------------------------------------------------------------
    # Roles
    # -------------------------------------------------------------------

    def assign_roles(self, user_id: int, role_ids: List[int]) -> List[UserRoleRecord]:
        """
        Link roles to a user. Existing inactive links are reactivated;
        already active links are left as they are.
        """
        def _assign(session: Session) -> List[UserRoleRecord]:
            _require_active(session, orm.User, user_id, "user")
            links = []
            for role_id in dict.fromkeys(role_ids):
                _require_active(session, orm.Role, role_id, "role")
                link = session.scalars(
                    select(orm.UserRole).where(
                        orm.UserRole.user_id == user_id,
                        orm.UserRole.role_id == role_id,
                    )
                ).first()
                if link is None:
                    link = orm.UserRole(user_id=user_id, role_id=role_id, is_active=True)
                    session.add(link)
                else:
                    link.is_active = True
                links.append(link)
            session.flush()
            return [UserRoleRecord.model_validate(link) for link in links]

        records = self._db.run("users.assign_roles", _assign)
        log(log_record_operation(
            "assign", "user_role", record_id=user_id, fields_changed=[str(r.role_id) for r in records],
        ))
        return records

    def list_roles(self, user_id: int) -> List[RoleRecord]:
        def _list(session: Session) -> List[RoleRecord]:
            _require_active(session, orm.User, user_id, "user")
            rows = session.scalars(
                select(orm.Role)
                .join(orm.UserRole, orm.UserRole.role_id == orm.Role.id)
                .where(
                    orm.UserRole.user_id == user_id,
                    orm.UserRole.is_active.is_(True),
                    orm.Role.is_active.is_(True),
                )
                .order_by(orm.Role.id)
            )
            return [RoleRecord.model_validate(r) for r in rows]

        return self._db.run("users.list_roles", _list)

    def revoke_role(self, user_id: int, role_id: int) -> None:
        def _revoke(session: Session) -> None:
            link = session.scalars(
                select(orm.UserRole).where(
                    orm.UserRole.user_id == user_id,
                    orm.UserRole.role_id == role_id,
                    orm.UserRole.is_active.is_(True),
                )
            ).first()
            if link is None:
                raise NotFoundError(
                    f"User {user_id} does not hold role {role_id}",
                    object_ref=f"users.{user_id}.roles.{role_id}",
                    record_type="user_role",
                    record_id=role_id,
                )
            link.is_active = False

        self._db.run("users.revoke_role", _revoke)
        log(log_record_operation("revoke", "user_role", record_id=user_id, fields_changed=[str(role_id)]))

    @staticmethod
    def _check_email_free(session: Session, email: str) -> None:
        existing = session.scalars(select(orm.User.id).where(orm.User.email == email)).first()
        if existing is not None:
            raise InvalidInputError(
                f"Email '{email}' is already registered",
                object_ref="users.email",
                validation_errors=[{"field": "email", "error": "duplicate"}],
            )


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

class RoleService:

    def __init__(self, database: Database):
        self._db = database

    def create(self, data: RoleCreate) -> RoleRecord:
        def _create(session: Session) -> RoleRecord:
            role = orm.Role(name=data.name, description=data.description, is_active=True)
            session.add(role)
            session.flush()
            return RoleRecord.model_validate(role)

        record = self._db.run("roles.create", _create)
        log(log_record_operation("create", "role", record_id=record.id))
        return record

    def get(self, role_id: int) -> RoleRecord:
        def _get(session: Session) -> RoleRecord:
            return RoleRecord.model_validate(_require_active(session, orm.Role, role_id, "role"))

        return self._db.run("roles.get", _get)

    def list(self) -> List[RoleRecord]:
        def _list(session: Session) -> List[RoleRecord]:
            rows = session.scalars(
                select(orm.Role).where(orm.Role.is_active.is_(True)).order_by(orm.Role.id)
            )
            return [RoleRecord.model_validate(r) for r in rows]

        return self._db.run("roles.list", _list)

    def update(self, role_id: int, data: RoleUpdate) -> RoleRecord:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        def _update(session: Session) -> Tuple[RoleRecord, List[str]]:
            role = _require_active(session, orm.Role, role_id, "role")
            changed = _apply_changes(role, changes)
            session.flush()
            return RoleRecord.model_validate(role), changed

        record, changed = self._db.run("roles.update", _update)
        log(log_record_operation("update", "role", record_id=role_id, fields_changed=changed))
        return record

    def delete(self, role_id: int) -> Dict[str, int]:
        def _delete(session: Session) -> Dict[str, int]:
            role = _require_active(session, orm.Role, role_id, "role")
            role.is_active = False
            result = session.execute(
                update(orm.UserRole)
                .where(orm.UserRole.role_id == role_id, orm.UserRole.is_active.is_(True))
                .values(is_active=False)
            )
            return {orm.UserRole.__tablename__: result.rowcount}

        cascaded = self._db.run("roles.delete", _delete)
        log(log_record_operation("delete", "role", record_id=role_id, cascaded=cascaded))
        return cascaded


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

class PostService:

    def __init__(self, database: Database):
        self._db = database

    def create(self, data: PostCreate) -> PostRecord:
        def _create(session: Session) -> PostRecord:
            _require_active(session, orm.User, data.user_id, "user")
            post = orm.Post(title=data.title, content=data.content, user_id=data.user_id, is_active=True)
            session.add(post)
            session.flush()
            return PostRecord.model_validate(post)

        record = self._db.run("posts.create", _create)
        log(log_record_operation("create", "post", record_id=record.id, user_id=data.user_id))
        return record

    def get(self, post_id: int) -> PostRecord:
        def _get(session: Session) -> PostRecord:
            return PostRecord.model_validate(_require_active(session, orm.Post, post_id, "post"))

        return self._db.run("posts.get", _get)

    def list(self, user_id: Optional[int] = None) -> List[PostRecord]:
        def _list(session: Session) -> List[PostRecord]:
            stmt = select(orm.Post).where(orm.Post.is_active.is_(True))
            if user_id is not None:
                stmt = stmt.where(orm.Post.user_id == user_id)
            return [PostRecord.model_validate(p) for p in session.scalars(stmt.order_by(orm.Post.id))]

        return self._db.run("posts.list", _list)

    def update(self, post_id: int, data: PostUpdate) -> PostRecord:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        def _update(session: Session) -> Tuple[PostRecord, List[str]]:
            post = _require_active(session, orm.Post, post_id, "post")
            changed = _apply_changes(post, changes)
            session.flush()
            return PostRecord.model_validate(post), changed

        record, changed = self._db.run("posts.update", _update)
        log(log_record_operation("update", "post", record_id=post_id, fields_changed=changed))
        return record

    def delete(self, post_id: int) -> None:
        def _delete(session: Session) -> None:
            _require_active(session, orm.Post, post_id, "post").is_active = False

        self._db.run("posts.delete", _delete)
        log(log_record_operation("delete", "post", record_id=post_id))


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class ProfileService:

    def __init__(self, database: Database):
        self._db = database

    def create(self, data: ProfileCreate) -> ProfileRecord:
        def _create(session: Session) -> ProfileRecord:
            _require_active(session, orm.User, data.user_id, "user")
            profile = orm.Profile(
                user_id=data.user_id, bio=data.bio, address=data.address, is_active=True,
            )
            session.add(profile)
            session.flush()
            return ProfileRecord.model_validate(profile)

        record = self._db.run("profiles.create", _create)
        log(log_record_operation("create", "profile", record_id=record.id, user_id=data.user_id))
        return record

    def get(self, profile_id: int) -> ProfileRecord:
        def _get(session: Session) -> ProfileRecord:
            return ProfileRecord.model_validate(_require_active(session, orm.Profile, profile_id, "profile"))

        return self._db.run("profiles.get", _get)

    def update(self, profile_id: int, data: ProfileUpdate) -> ProfileRecord:
        changes = data.model_dump(exclude_unset=True)

        def _update(session: Session) -> Tuple[ProfileRecord, List[str]]:
            profile = _require_active(session, orm.Profile, profile_id, "profile")
            changed = _apply_changes(profile, changes)
            session.flush()
            return ProfileRecord.model_validate(profile), changed

        record, changed = self._db.run("profiles.update", _update)
        log(log_record_operation("update", "profile", record_id=profile_id, fields_changed=changed))
        return record

    def delete(self, profile_id: int) -> None:
        def _delete(session: Session) -> None:
            _require_active(session, orm.Profile, profile_id, "profile").is_active = False

        self._db.run("profiles.delete", _delete)
        log(log_record_operation("delete", "profile", record_id=profile_id))
