"""Environment variable loaders for configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import InvalidConfigurationValueError

if TYPE_CHECKING:
    from collections.abc import Mapping

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


def env_value(env: Mapping[str, str], key: str) -> str | None:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    return value.strip()


def env_int(env: Mapping[str, str], key: str, default: int, *, minimum: int | None = None) -> int:
    value = env_value(env, key)
    if value is None:
        return default
    try:
        number = int(value)
    except ValueError:
        raise InvalidConfigurationValueError(key, "an integer", value) from None
    if minimum is not None and number < minimum:
        raise InvalidConfigurationValueError(key, f"an integer >= {minimum}", value)
    return number


def env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env_value(env, key)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise InvalidConfigurationValueError(key, "a boolean (true/false)", value)
