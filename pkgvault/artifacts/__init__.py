"""
pkgvault Packages & Artifacts.

Binary attachments stored in the database and delivered one by one or as a
zip archive of a whole package.
"""

from pkgvault.artifacts.archive import ArchiveBuilder
from pkgvault.artifacts.models import Artifact, ArtifactSummary, PackageRecord
from pkgvault.artifacts.store import ArtifactStore

__all__ = [
    "Artifact",
    "ArtifactSummary",
    "PackageRecord",
    "ArtifactStore",
    "ArchiveBuilder",
]
