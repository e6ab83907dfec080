"""Engine configuration: YAML file + env var overrides.

Priority: env var > YAML file > default.
Env vars use ALERTROUTE_{FIELD_NAME} (e.g. ALERTROUTE_MAX_ATTEMPTS=3).
YAML file default: ~/.alertroute/config.yaml
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

_DEFAULT_PATH = Path("~/.alertroute/config.yaml").expanduser()


@dataclass
class EngineConfig:
    # Delivery retrier
    max_attempts: int = 5
    base_delay: float = 0.5
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    # Bound for every provider call, seconds
    dispatch_timeout: float = 10.0
    # Parallel (event, rule) passes
    max_concurrency: int = 32
    # Time budget for one event against a rule's exclusion list, seconds
    exclusion_timeout: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        for name in ("base_delay", "max_delay", "dispatch_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.exclusion_timeout <= 0:
            raise ValueError(f"exclusion_timeout must be > 0, got {self.exclusion_timeout}")

    @classmethod
    def load(cls, path: Path | None = None) -> EngineConfig:
        """Load config from YAML file, then override with env vars."""
        file_path = path or _DEFAULT_PATH
        file_values: dict[str, Any] = {}

        if file_path.exists():
            raw = yaml.safe_load(file_path.read_text()) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"{file_path}: expected a mapping, got {type(raw).__name__}")
            file_values = raw

        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            env_key = f"ALERTROUTE_{f.name.upper()}"
            cast = int if f.type in ("int", int) else float
            if env_key in os.environ:
                raw_value = os.environ[env_key]
                source = env_key
            elif f.name in file_values:
                raw_value = file_values[f.name]
                source = f"{file_path}:{f.name}"
            else:
                continue
            try:
                kwargs[f.name] = cast(raw_value)
            except (TypeError, ValueError) as err:
                raise ValueError(
                    f"{source}={raw_value!r} is not a valid {cast.__name__}"
                ) from err

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
