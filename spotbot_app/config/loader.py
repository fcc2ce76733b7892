"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigurationError
from .defaults import (
    AggregationParams,
    DefaultConfig,
    FeedParams,
    GovernorParams,
    NotifyParams,
    PlannerParams,
    SellParams,
    get_default_config,
)

_GROUPS = {
    "governor": GovernorParams,
    "aggregation": AggregationParams,
    "planner": PlannerParams,
    "sell": SellParams,
    "feed": FeedParams,
    "notify": NotifyParams,
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=config_dir,
            defaults=get_default_config(),
        )

    def load_venue_config(self, venue_code: str) -> dict[str, Any]:
        """Load venue-specific configuration overrides."""
        venues_file = self.config_dir / "venues.yaml"

        if not venues_file.exists():
            return {}

        with open(venues_file) as f:
            try:
                venues_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Cannot parse {venues_file}: {e}",
                    field="venues",
                ) from e

        return venues_config.get("venues", {}).get(venue_code.upper(), {}) or {}

    def merge_config(
        self,
        venue_code: str,
        run_overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Per-run overrides (highest priority)
        2. Venue-specific overrides
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        venue_config = self.load_venue_config(venue_code)
        config = self._deep_merge(config, venue_config)

        if run_overrides:
            config = self._deep_merge(config, run_overrides)

        return config

    def load(
        self,
        venue_code: str,
        run_overrides: Optional[dict[str, Any]] = None
    ) -> DefaultConfig:
        """Merge configuration and rebuild the typed parameter groups."""
        return self.build(self.merge_config(venue_code, run_overrides))

    def build(self, config: dict[str, Any]) -> DefaultConfig:
        """Turn a merged configuration dictionary back into dataclasses."""
        groups = {}
        for name, group_cls in _GROUPS.items():
            values = config.get(name, {}) or {}
            known = {f.name for f in fields(group_cls)}
            unknown = set(values) - known
            if unknown:
                raise ConfigurationError(
                    f"Unknown {name} parameter(s): {', '.join(sorted(unknown))}",
                    field=name,
                    value=sorted(unknown),
                )
            kwargs = dict(values)
            if "ladder" in kwargs:
                kwargs["ladder"] = tuple(kwargs["ladder"])
            groups[name] = group_cls(**kwargs)
        return DefaultConfig(**groups)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                elif isinstance(value, dict):
                    result[field_name] = dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
