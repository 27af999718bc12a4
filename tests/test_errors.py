"""Unit tests for pkgvault.engine.errors — Error hierarchy & serialization."""

import json
import pytest

from pkgvault.engine.errors import (
    ConfigError,
    InvalidInputError,
    NotFoundError,
    PkgVaultError,
    StorageFailureError,
)


class TestPkgVaultError:
    """Base error class tests."""

    def test_basic_creation(self):
        err = PkgVaultError("something broke")
        assert err.message == "something broke"
        assert str(err) == "something broke"
        assert err.error_type == "PkgVaultError"
        assert err.object_ref is None

    def test_to_dict(self):
        err = PkgVaultError("fail", object_ref="packages.7", attempt=2)
        d = err.to_dict()
        assert d["error_type"] == "PkgVaultError"
        assert d["message"] == "fail"
        assert d["object_ref"] == "packages.7"
        assert d["context"] == {"attempt": "2"}
        assert "timestamp" in d

    def test_to_json(self):
        parsed = json.loads(PkgVaultError("fail").to_json())
        assert parsed["error_type"] == "PkgVaultError"
        assert parsed["message"] == "fail"

    def test_repr_includes_ref(self):
        err = PkgVaultError("fail", object_ref="artifacts.3")
        assert repr(err) == "PkgVaultError: fail | object_ref=artifacts.3"


class TestSubclasses:

    @pytest.mark.parametrize("cls", [NotFoundError, InvalidInputError, StorageFailureError, ConfigError])
    def test_inherit_base(self, cls):
        err = cls("x")
        assert isinstance(err, PkgVaultError)
        assert err.error_type == cls.__name__

    def test_not_found_fields(self):
        err = NotFoundError("gone", record_type="package", record_id=42)
        assert err.record_type == "package"
        assert err.record_id == 42
        d = err.to_dict()
        assert d["record_type"] == "package"
        assert d["record_id"] == 42

    def test_invalid_input_validation_errors(self):
        errors = [{"field": "name", "error": "empty"}]
        err = InvalidInputError("bad", validation_errors=errors)
        assert err.validation_errors == errors
        assert err.to_dict()["validation_errors"] == errors

    def test_storage_failure_operation(self):
        err = StorageFailureError("db down", operation="artifacts.put")
        assert err.operation == "artifacts.put"
        assert err.to_dict()["operation"] == "artifacts.put"

    def test_catchable_as_base(self):
        with pytest.raises(PkgVaultError):
            raise StorageFailureError("boom")
