# Vaultkeep - Configuration
#
# The encryption key is read once from the environment (or a .env file).
# When it is missing a well-known placeholder is substituted so existing
# records written with the placeholder stay readable. That placeholder is
# public, so running on it is flagged loudly.

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .audit_log import EventSeverity, EventType, get_audit_logger
from ..vault.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = "VAULTKEEP_ENCRYPTION_KEY"
# Name used by the browser client that wrote the first records
LEGACY_ENCRYPTION_KEY_ENV = "VITE_ENCRYPTION_KEY"
REQUIRE_KEY_ENV = "VAULTKEEP_REQUIRE_KEY"

# Non-secret placeholder. Records encrypted while it was in effect need it to decrypt.
DEFAULT_ENCRYPTION_KEY = "your-secret-encryption-key-change-this-in-production"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class VaultSettings:
    """Process-wide vault configuration, read-only after load."""

    encryption_key: str
    key_source: str
    using_default_key: bool = False

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        use_dotenv: bool = True,
    ) -> "VaultSettings":
        """
        Load settings from the environment.

        Args:
            environ: Mapping to read instead of ``os.environ``. A ``.env``
                     file is only consulted when reading the real environment.
            use_dotenv: Load ``.env`` (searched from the working directory up)
                        into ``os.environ`` first; existing variables win

        Raises:
            ConfigurationError: Key missing while ``VAULTKEEP_REQUIRE_KEY`` is set
        """
        if environ is None:
            if use_dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        for name in (ENCRYPTION_KEY_ENV, LEGACY_ENCRYPTION_KEY_ENV):
            value = environ.get(name)
            if value:
                return cls(encryption_key=value, key_source=name)

        if environ.get(REQUIRE_KEY_ENV, "").strip().lower() in _TRUTHY:
            raise ConfigurationError(
                f"{ENCRYPTION_KEY_ENV} is not set and {REQUIRE_KEY_ENV} is enabled"
            )

        logger.warning(
            "%s is not set; falling back to the built-in placeholder key. "
            "Stored secrets are NOT protected by a private key.",
            ENCRYPTION_KEY_ENV,
        )
        get_audit_logger().log_event(
            event_type=EventType.CONFIG_INSECURE_DEFAULT_KEY,
            severity=EventSeverity.ALERT,
            message="Encryption key missing, using insecure default",
            details={"env_var": ENCRYPTION_KEY_ENV},
        )
        return cls(
            encryption_key=DEFAULT_ENCRYPTION_KEY,
            key_source="default",
            using_default_key=True,
        )


_settings: Optional[VaultSettings] = None


def get_settings() -> VaultSettings:
    """Get global settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = VaultSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
