"""Patch-specific options taken from KEY=VALUE pairs or the environment."""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from .env import env_bool, env_int, env_value
from .errors import InvalidConfigurationValueError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


def _decimal(env: Mapping[str, str], key: str) -> Decimal | None:
    value = env_value(env, key)
    if value is None:
        return None
    try:
        number = Decimal(value)
    except InvalidOperation:
        raise InvalidConfigurationValueError(key, "a number", value) from None
    if not number.is_finite():
        raise InvalidConfigurationValueError(key, "a finite number", value)
    return number


def _date(env: Mapping[str, str], key: str) -> date | None:
    value = env_value(env, key)
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidConfigurationValueError(key, "an ISO date (YYYY-MM-DD)", value) from None


def _int(env: Mapping[str, str], key: str) -> int | None:
    if env_value(env, key) is None:
        return None
    return env_int(env, key, 0)


def _bool(env: Mapping[str, str], key: str) -> bool | None:
    if env_value(env, key) is None:
        return None
    return env_bool(env, key, False)


PATCH_OPTION_KEYS: dict[str, Callable[[Mapping[str, str], str], object]] = {
    "ADJUSTMENT_TYPE": env_value,
    "ADJUSTMENT_VALUE": _decimal,
    "CATEGORY": env_value,
    "MIN_PRICE": _decimal,
    "MAX_PRICE": _decimal,
    "BEFORE_DATE": _date,
    "GRACE_PERIOD": _int,
    "INCLUDE_EXPIRING_SOON": _bool,
    "WARNING_DAYS": _int,
    "EXPIRY_DATE": _date,
    "UPDATE_INVENTORY_STATUS": _bool,
}


def parse_patch_options(env: Mapping[str, str] | None = None) -> dict[str, object]:
    """Convert recognised upper-case keys into typed, lower-case patch options.

    Keys that are absent or blank are left out so each patch applies its own
    default.
    """

    environ = os.environ if env is None else env
    options: dict[str, object] = {}
    for key, convert in PATCH_OPTION_KEYS.items():
        value = convert(environ, key)
        if value is not None:
            options[key.lower()] = value
    return options
