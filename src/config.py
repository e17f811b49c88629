"""Unified configuration loaded from .ambassador.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from ambassador.compliance.models import PublishPolicy
from ambassador.governance.models import PlanTier
from ambassador.governance.trust import TrustThresholds

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".ambassador.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]


class StoreConfig(BaseModel):
    """[store] section."""

    directory: str = "./.ambassador"


class TenantConfig(BaseModel):
    """[tenant] section."""

    timezone: str = "Asia/Seoul"
    default_tier: PlanTier = PlanTier.BASIC

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {value!r}") from exc
        return value


class ComplianceSectionConfig(BaseModel):
    """[compliance] section."""

    rule_set: str = "medical"
    default_policy: PublishPolicy = PublishPolicy.REJECT_ON_VIOLATION


class SlotsConfig(BaseModel):
    """[slots] section — maximum slots per plan tier."""

    limits: dict[PlanTier, int] = Field(
        default_factory=lambda: {PlanTier.BASIC: 1, PlanTier.PRO: 3, PlanTier.ULTRA: 5}
    )

    def limit_for(self, tier: PlanTier | str) -> int:
        return self.limits.get(PlanTier(tier), 1)


class AmbassadorConfig(BaseModel):
    """Top-level configuration for the governance engine."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    tenant: TenantConfig = Field(default_factory=TenantConfig)
    compliance: ComplianceSectionConfig = Field(default_factory=ComplianceSectionConfig)
    trust: TrustThresholds = Field(default_factory=TrustThresholds)
    slots: SlotsConfig = Field(default_factory=SlotsConfig)

    @property
    def store_path(self) -> Path:
        return Path(self.store.directory).expanduser()


def load_config(path: str | Path | None = None) -> AmbassadorConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .ambassador.toml in CWD
    3. ~/.config/ambassador/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged AmbassadorConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        global_config = Path.home() / ".config" / "ambassador" / "config.toml"
        if not data and global_config.exists():
            data = _load_toml(global_config)
            logger.info("Loaded config from %s", global_config)

    config = AmbassadorConfig.model_validate(data) if data else AmbassadorConfig()

    config = _apply_env_vars(config)

    return config


def merge_cli_overrides(config: AmbassadorConfig, **cli_kwargs: object) -> AmbassadorConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "store_dir": ("store", "directory"),
        "timezone": ("tenant", "timezone"),
        "rule_set": ("compliance", "rule_set"),
        "policy": ("compliance", "default_policy"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return AmbassadorConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: AmbassadorConfig) -> AmbassadorConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "AMBASSADOR_STORE_DIR": ("store", "directory"),
        "AMBASSADOR_TIMEZONE": ("tenant", "timezone"),
        "AMBASSADOR_RULE_SET": ("compliance", "rule_set"),
        "AMBASSADOR_POLICY": ("compliance", "default_policy"),
    }

    changed = False
    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var, "").strip()
        if value:
            data[section][field] = value
            changed = True

    if changed:
        return AmbassadorConfig.model_validate(data)
    return config
