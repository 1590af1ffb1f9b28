"""
Session Configuration Module
============================

Provides immutable, environment-aware configuration with security-first defaults.

The cryptographic suite is fixed and is deliberately absent from here;
only ambient behaviour (logging, memory handling) is configurable.

Security Features:
- Immutable configuration after initialization
- Environment variable override support
- Sensitive-looking keys are never read from the environment
- Type-safe configuration access
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Optional


_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "token", "api_key",
    "private", "credential", "auth", "salt",
})

_VALID_LEVELS: Final[frozenset[str]] = frozenset({
    "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
})

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "WARNING"
    enable_console: bool = False
    enable_file: bool = False
    # JSON lines in the log file instead of the plain format
    json_format: bool = False
    log_dir: Optional[Path] = None
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate logging settings."""
        if self.level.upper() not in _VALID_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.log_dir is not None and not self.log_dir.is_absolute():
            raise ValueError(f"log_dir must be an absolute path: {self.log_dir}")
        if self.enable_file and self.log_dir is None:
            raise ValueError("enable_file requires log_dir")


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """Immutable memory-handling configuration."""

    # Try to mlock key buffers
    lock_memory: bool = True
    # Zero exported secrets once they have been consumed
    secure_memory_wipe: bool = True


class SessionConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    Usage:
        config = SessionConfig.load()
        level = config.logging.level

    Environment variables use the SEALEDSESSION_ prefix and a double
    underscore between section and key:
        SEALEDSESSION_LOGGING__LEVEL=DEBUG
        SEALEDSESSION_SECURITY__LOCK_MEMORY=false
    """

    __slots__ = ("_security", "_logging", "_frozen", "_config_hash")

    _instance: Optional[SessionConfig] = None

    def __init__(
        self,
        security: Optional[SecurityConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use SessionConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_security", security or SecurityConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Compute a hash of the configuration for integrity checking."""
        config_str = f"{self._security}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def security(self) -> SecurityConfig:
        """Get memory-handling configuration."""
        return self._security

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._logging

    @property
    def config_hash(self) -> str:
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "SEALEDSESSION") -> SessionConfig:
        """
        Load configuration with environment variable overrides.

        Args:
            env_prefix: Prefix for environment variables (default: SEALEDSESSION)

        Returns:
            Configured SessionConfig instance

        Raises:
            ValueError: If an override holds an invalid value
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"].upper()
        if "logging.enable_console" in env_overrides:
            logging_kwargs["enable_console"] = _parse_bool(env_overrides["logging.enable_console"])
        if "logging.enable_file" in env_overrides:
            logging_kwargs["enable_file"] = _parse_bool(env_overrides["logging.enable_file"])
        if "logging.json_format" in env_overrides:
            logging_kwargs["json_format"] = _parse_bool(env_overrides["logging.json_format"])
        if "logging.log_dir" in env_overrides:
            logging_kwargs["log_dir"] = Path(env_overrides["logging.log_dir"])

        security_kwargs: dict[str, Any] = {}
        if "security.lock_memory" in env_overrides:
            security_kwargs["lock_memory"] = _parse_bool(env_overrides["security.lock_memory"])
        if "security.secure_memory_wipe" in env_overrides:
            security_kwargs["secure_memory_wipe"] = _parse_bool(
                env_overrides["security.secure_memory_wipe"]
            )

        return cls(
            security=SecurityConfig(**security_kwargs) if security_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # SEALEDSESSION_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> SessionConfig:
        """Get or create the singleton configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def __repr__(self) -> str:
        return f"SessionConfig(hash={self._config_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if getattr(self, "_frozen", False):
            raise AttributeError("SessionConfig is immutable after initialization")
        super().__setattr__(name, value)
