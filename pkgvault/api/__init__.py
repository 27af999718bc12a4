"""pkgvault API — FastAPI delivery layer over the store, archive builder and record services."""

from pkgvault.api.app import create_app

__all__ = ["create_app"]
