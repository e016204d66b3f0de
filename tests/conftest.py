"""
Shared pytest fixtures for the Vaultkeep test suite.

Autouse fixtures below isolate tests from the live environment:
  - Audit logger  -> temp directory  (no test events in ./audit_logs)
  - Key settings  -> cleared         (a developer's real key never leaks in)
"""

import json

import pytest

TEST_KEY = "test-key"


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test.

    Without this, any test that (directly or indirectly) calls
    ``get_audit_logger().log_event(...)`` writes into the real
    ``./audit_logs/`` directory.
    """
    import vaultkeep.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = audit_mod.AuditLogger(log_dir=tmp_path / "audit_logs")

    yield audit_mod._audit_logger

    audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Start every test with no key in the environment and no cached settings."""
    import vaultkeep.core.config as config_mod

    for name in (
        config_mod.ENCRYPTION_KEY_ENV,
        config_mod.LEGACY_ENCRYPTION_KEY_ENV,
        config_mod.REQUIRE_KEY_ENV,
    ):
        monkeypatch.delenv(name, raising=False)
    config_mod.reset_settings()

    yield

    config_mod.reset_settings()


@pytest.fixture
def audit_events(_isolate_audit_logs):
    """Callable returning the audit events written so far in this test."""

    def read():
        path = _isolate_audit_logs.log_file
        if not path.exists():
            return []
        with open(path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    return read


@pytest.fixture
def crypto():
    from vaultkeep.vault import VaultCrypto

    return VaultCrypto(TEST_KEY)


@pytest.fixture
def service(crypto):
    from vaultkeep.vault import VaultItemService

    return VaultItemService(crypto)
