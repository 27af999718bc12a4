"""
pkgvault — Packages, binary artifacts and zip archive delivery over HTTP.

Subpackages:
    engine     — config, errors, structured logging
    db         — SQLAlchemy models and the Database session owner
    artifacts  — ArtifactStore and ArchiveBuilder
    records    — users, roles, posts, profiles
    api        — FastAPI delivery layer
"""

__version__ = "1.0.0"
__all__ = ["engine", "db", "artifacts", "records", "api"]
