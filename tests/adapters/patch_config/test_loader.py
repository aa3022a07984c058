from __future__ import annotations

import re
from typing import TYPE_CHECKING

import pytest

from stockrx.adapters.patch_config import (
    PatchConfigFile,
    config_file_source,
    load_patch_config,
    read_patch_config,
    resolve_class,
    write_starter_config,
)
from stockrx.config import ConfigurationError
from stockrx.domain.patches import (
    InventoryPriceAdjustment,
    PatchRegistry,
    register_builtin_patches,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_starter_config_round_trips_through_the_schema(tmp_path: Path) -> None:
    path = write_starter_config(tmp_path / "nested" / "data_patches.toml")

    config = load_patch_config(path)

    entry = config.patches["campaign_price_adjustment"]
    assert entry.status == "inactive"
    assert entry.risk_level == "medium"
    assert config.security.max_batch_size == 10_000
    assert config.scheduling.expiry_update.grace_period == 3
    assert config.scheduling.expiry_update.include_expiring_soon is True


def test_starter_config_refuses_to_overwrite(tmp_path: Path) -> None:
    path = tmp_path / "data_patches.toml"
    path.write_text("# mine\n", encoding="utf-8")

    with pytest.raises(FileExistsError):
        write_starter_config(path)
    assert path.read_text(encoding="utf-8") == "# mine\n"

    write_starter_config(path, force=True)
    assert "[security]" in path.read_text(encoding="utf-8")


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    assert read_patch_config(tmp_path / "absent.toml") == PatchConfigFile()


@pytest.mark.parametrize(
    "content",
    [
        "[patches.broken\n",
        '[patches.x]\nclass_path = "no colon here"\n',
        "[security]\nmax_batch_size = 0\n",
        "[unexpected]\nkey = 1\n",
    ],
)
def test_malformed_config_raises_configuration_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "data_patches.toml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError, match=re.escape(str(path))):
        load_patch_config(path)


def test_resolve_class() -> None:
    resolved = resolve_class("stockrx.domain.patches.price_adjustment:InventoryPriceAdjustment")

    assert resolved is InventoryPriceAdjustment


def test_config_file_source_registers_entries_and_skips_bad_ones(tmp_path: Path) -> None:
    path = tmp_path / "data_patches.toml"
    path.write_text(
        """
[patches.campaign]
class_path = "stockrx.domain.patches.price_adjustment:InventoryPriceAdjustment"
category = "inventory"
tags = ["campaign"]

[patches.missing_module]
class_path = "stockrx.nowhere:Patch"

[patches.not_a_patch]
class_path = "stockrx.domain.queries:InventoryCriteria"

[patches.inventory_price_adjustment]
class_path = "stockrx.domain.patches.price_adjustment:InventoryPriceAdjustment"
""",
        encoding="utf-8",
    )

    registry = PatchRegistry(sources=(register_builtin_patches, config_file_source(path)))

    assert registry.names == ["batch_expiry_update", "campaign", "inventory_price_adjustment"]
    campaign = registry.find_patch("campaign")
    assert campaign.metadata.source == "config_file"
    assert campaign.metadata.tags == ("campaign",)
    assert registry.find_patch("inventory_price_adjustment").metadata.source == "builtin"


def test_config_file_source_without_file_registers_nothing(tmp_path: Path) -> None:
    registry = PatchRegistry(sources=(config_file_source(tmp_path / "absent.toml"),))

    assert len(registry) == 0
