"""Read, write and register patches from the data patch TOML file."""

from __future__ import annotations

import importlib
import logging
import tomllib
from typing import TYPE_CHECKING

from pydantic import ValidationError

from stockrx.config import ConfigurationError
from stockrx.domain.patches import DuplicatePatchError, InvalidPatchClassError

from .schema import PatchConfigFile

if TYPE_CHECKING:
    from pathlib import Path

    from stockrx.domain.patches import PatchRegistry, PatchSource

log = logging.getLogger(__name__)

STARTER_CONFIG = """\
# stockrx data patch configuration
#
# Patches listed here are registered in addition to the built-in ones.
# class_path is "module:ClassName" and must name a DataPatch subclass.

[patches.campaign_price_adjustment]
class_path = "stockrx.domain.patches.price_adjustment:InventoryPriceAdjustment"
description = "Campaign pricing run, registered under its own name"
category = "inventory"
status = "inactive"
target_tables = ["inventories", "inventory_logs"]
estimated_records = 1000
memory_limit = 256
batch_size = 100
tags = ["price", "campaign"]
risk_level = "medium"

[security]
# runs asking for more than this are rejected before any data access
max_batch_size = 10000
max_timeout_seconds = 21600

[scheduling.expiry_update]
grace_period = 3
include_expiring_soon = true
warning_days = 30
"""


def load_patch_config(path: Path) -> PatchConfigFile:
    """Parse and validate ``path``; raise ``ConfigurationError`` when it is malformed."""

    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
        return PatchConfigFile.model_validate(document)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid data patch config {path}: {exc}") from exc


def read_patch_config(path: Path) -> PatchConfigFile:
    """Like :func:`load_patch_config`, but a missing file yields the defaults."""

    if not path.exists():
        return PatchConfigFile()
    return load_patch_config(path)


def write_starter_config(path: Path, *, force: bool = False) -> Path:
    if path.exists() and not force:
        raise FileExistsError(f"Config file already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(STARTER_CONFIG, encoding="utf-8")
    log.info("Wrote starter data patch config to %s", path)
    return path


def resolve_class(class_path: str) -> object:
    module_name, _, attribute_path = class_path.partition(":")
    target: object = importlib.import_module(module_name)
    for attribute in attribute_path.split("."):
        target = getattr(target, attribute)
    return target


def config_file_source(path: Path) -> PatchSource:
    """Registry source registering every ``[patches.<name>]`` entry of ``path``.

    A missing file registers nothing. Entries whose class cannot be imported or
    is not a concrete patch are logged and skipped.
    """

    def source(registry: PatchRegistry) -> None:
        if not path.exists():
            log.debug("No data patch config at %s", path)
            return
        config = load_patch_config(path)
        for name, entry in sorted(config.patches.items()):
            try:
                patch_class = resolve_class(entry.class_path)
            except (ImportError, AttributeError) as exc:
                log.warning(
                    "Skipping data patch %s: cannot import %s (%s)", name, entry.class_path, exc
                )
                continue
            try:
                registry.register_patch(
                    name,
                    patch_class,  # pyright: ignore[reportArgumentType]
                    entry.to_metadata(),
                )
            except (InvalidPatchClassError, DuplicatePatchError) as exc:
                log.warning("Skipping data patch %s: %s", name, exc)

    return source
