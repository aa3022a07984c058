"""Pydantic models for the data patch TOML file."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt

from stockrx.domain.patches import PatchMetadata

type RiskLevel = Literal["low", "medium", "high"]


class PatchConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PatchEntry(PatchConfigModel):
    class_path: str = Field(pattern=r"^[A-Za-z_][\w.]*:[A-Za-z_][\w.]*$")
    description: str = ""
    category: str = "general"
    status: str = "active"
    target_tables: list[str] = Field(default_factory=list)
    estimated_records: NonNegativeInt = 0
    memory_limit: PositiveInt = 500
    batch_size: PositiveInt = 1000
    tags: list[str] = Field(default_factory=list)
    risk_level: RiskLevel = "low"

    def to_metadata(self) -> PatchMetadata:
        return PatchMetadata(
            description=self.description,
            category=self.category,
            status=self.status,
            target_tables=tuple(self.target_tables),
            estimated_records=self.estimated_records,
            memory_limit=self.memory_limit,
            batch_size=self.batch_size,
            source="config_file",
            tags=tuple(self.tags),
            risk_level=self.risk_level,
        )


class SecuritySettings(PatchConfigModel):
    max_batch_size: PositiveInt = 10_000
    max_timeout_seconds: PositiveInt = 6 * 3600


class ScheduledExpiryUpdate(PatchConfigModel):
    grace_period: NonNegativeInt = 3
    include_expiring_soon: bool = True
    warning_days: PositiveInt = 30


class SchedulingSettings(PatchConfigModel):
    expiry_update: ScheduledExpiryUpdate = Field(default_factory=ScheduledExpiryUpdate)


class PatchConfigFile(PatchConfigModel):
    patches: dict[str, PatchEntry] = Field(default_factory=dict)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    scheduling: SchedulingSettings = Field(default_factory=SchedulingSettings)
