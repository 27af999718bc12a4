"""
pkgvault Models — All SQLAlchemy models.

Tables:
1. users      — Principals; optional profile image blob
2. roles      — Groupings
3. user_role  — User ↔ Role junction
4. posts      — Single-owner posts
5. profiles   — Single-owner profile details
6. packages   — Containers of artifacts
7. artifacts  — Binary attachments of a package

Binary columns (artifacts.attachment, users.profile_image) are deferred with
raiseload: a plain select never loads them, and reading one on an instance
that was not loaded with undefer() raises instead of issuing a lazy query.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import deferred, relationship

from pkgvault.db.base import ActiveMixin, AuditMixin, Base


# ---------------------------------------------------------------------------
# 1. Users
# ---------------------------------------------------------------------------

class User(Base, AuditMixin, ActiveMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    firstname = Column(String(100), nullable=False)
    lastname = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    profile_image = deferred(Column(LargeBinary, nullable=True), raiseload=True)
    profile_mime_type = Column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


# ---------------------------------------------------------------------------
# 2. Roles
# ---------------------------------------------------------------------------

class Role(Base, AuditMixin, ActiveMixin):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}')>"


# ---------------------------------------------------------------------------
# 3. User-Role Junction
# ---------------------------------------------------------------------------

class UserRole(Base, AuditMixin, ActiveMixin):
    __tablename__ = "user_role"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_role"),
        Index("idx_ur_user_id", "user_id"),
        Index("idx_ur_role_id", "role_id"),
    )


# ---------------------------------------------------------------------------
# 4. Posts
# ---------------------------------------------------------------------------

class Post(Base, AuditMixin, ActiveMixin):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title='{self.title}')>"


# ---------------------------------------------------------------------------
# 5. Profiles
# ---------------------------------------------------------------------------

class Profile(Base, AuditMixin, ActiveMixin):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bio = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)


# ---------------------------------------------------------------------------
# 6. Packages
# ---------------------------------------------------------------------------

class Package(Base, AuditMixin):
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    artifacts = relationship(
        "Artifact",
        back_populates="package",
        order_by="Artifact.id",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Package(id={self.id}, name='{self.name}')>"


# ---------------------------------------------------------------------------
# 7. Artifacts
# ---------------------------------------------------------------------------

class Artifact(Base, AuditMixin):
    __tablename__ = "artifacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    attachment = deferred(Column(LargeBinary, nullable=False), raiseload=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False)

    package = relationship("Package", back_populates="artifacts", lazy="raise")

    __table_args__ = (
        Index("idx_artifacts_package_id", "package_id"),
    )

    def __repr__(self) -> str:
        return f"<Artifact(id={self.id}, name='{self.name}', package_id={self.package_id})>"
