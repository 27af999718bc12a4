"""pkgvault database layer."""

from pkgvault.db.base import Base
from pkgvault.db.session import Database

__all__ = ["Base", "Database"]
