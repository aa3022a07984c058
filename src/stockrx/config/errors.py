"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class InvalidConfigurationValueError(ConfigurationError, ValueError):
    """Raised when a configuration key holds a value of the wrong shape."""

    def __init__(self, key: str, expected: str, value: object) -> None:
        super().__init__(f"{key} must be {expected} (got {value!r})")
        self.key = key
        self.expected = expected
        self.value = value
