"""
pkgvault Error Hierarchy — Structured exceptions surfaced to the HTTP layer.

Every error carries its context so it can be serialized into a JSON log
entry without losing detail. The API layer maps each class to a status code;
nothing here is retried.

Hierarchy:
    PkgVaultError
    ├── NotFoundError        — Package / artifact / user id does not resolve
    ├── InvalidInputError    — Missing field, empty name, empty payload
    ├── StorageFailureError  — Database or sink I/O failure
    └── ConfigError          — Invalid pkgvault.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class PkgVaultError(Exception):
    """
    Base error for all pkgvault failures.
    All context is serializable to JSON.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.object_ref: Optional[str] = context.get("object_ref")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "object_ref": self.object_ref,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k != "object_ref"
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.object_ref:
            parts.append(f"object_ref={self.object_ref}")
        return " | ".join(parts)


class NotFoundError(PkgVaultError):
    """A package, artifact or other record id does not resolve."""

    def __init__(self, message: str, **context: Any):
        self.record_type: Optional[str] = context.get("record_type")
        self.record_id: Optional[Any] = context.get("record_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["record_type"] = self.record_type
        d["record_id"] = self.record_id
        return d


class InvalidInputError(PkgVaultError):
    """
    Input validation failed (empty name, empty payload, duplicate email).
    Includes field-level error details when available.
    """

    def __init__(self, message: str, **context: Any):
        self.validation_errors: Optional[list] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class StorageFailureError(PkgVaultError):
    """Underlying database or I/O error during put/get/archive write."""

    def __init__(self, message: str, **context: Any):
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["operation"] = self.operation
        return d


class ConfigError(PkgVaultError):
    """Configuration error — invalid pkgvault.yaml."""
    pass
