"""Operational settings, loaded from YAML."""

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


@dataclass(frozen=True)
class Settings:
    """Tunable parameters for analytics and advisories."""

    # Flat revenue credited per completed trip until real billing data exists
    revenue_per_trip: float = 850
    dead_stock_days: int = 30
    license_warning_days: int = 30
    heatmap_weeks: int = 8

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """
        Build settings from a camelCase or snake_case mapping.

        Missing keys keep their defaults; unknown keys raise ValueError.
        """
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name not in known:
                raise ValueError(f"Unknown setting: {key}")
            values[name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase YAML form."""
        return {_camel_case(k): v for k, v in asdict(self).items()}


def load_settings(filename: Union[str, Path]) -> Settings:
    """Load settings from a YAML file with the keys at the top level."""
    with open(filename, "r") as fp:
        return Settings.from_dict(yaml.safe_load(fp))


def _snake_case(key: str) -> str:
    return "".join("_" + c.lower() if c.isupper() else c for c in key)


def _camel_case(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)
