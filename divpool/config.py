"""
Pool configuration.

A `PoolConfig` is built in code or loaded from a YAML mapping, e.g.::

    magnitude: 340282366920938463463374607431768211456   # 2**128
    eligibility_threshold: 10000
    owner: "treasury"
    check_invariants_on_commit: false

Unknown keys are rejected (fail-closed).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .core.math import MAGNITUDE, UINT256_MAX


class ConfigError(ValueError):
    """Raised when a configuration source is malformed."""


@dataclass(frozen=True)
class PoolConfig:
    magnitude: int = MAGNITUDE
    eligibility_threshold: int = 1
    owner: str | None = None
    check_invariants_on_commit: bool = False

    def __post_init__(self) -> None:
        for name in ("magnitude", "eligibility_threshold"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise ConfigError(f"{name} must be an int")
            if not (0 <= v <= UINT256_MAX):
                raise ConfigError(f"{name} must be a uint256: {v}")
        if self.magnitude == 0:
            raise ConfigError("magnitude must be positive")
        if self.owner is not None and (not isinstance(self.owner, str) or not self.owner.strip()):
            raise ConfigError("owner must be a non-empty string when set")
        if not isinstance(self.check_invariants_on_commit, bool):
            raise ConfigError("check_invariants_on_commit must be a bool")


_FIELD_NAMES = frozenset(f.name for f in fields(PoolConfig))


def config_from_mapping(raw: Mapping[str, Any] | None) -> PoolConfig:
    """Build a `PoolConfig` from a plain mapping (missing keys take defaults)."""
    if raw is None:
        return PoolConfig()
    if not isinstance(raw, Mapping):
        raise ConfigError("pool config must be a mapping")
    unknown = sorted(set(raw) - _FIELD_NAMES)
    if unknown:
        raise ConfigError(f"unknown pool config keys: {', '.join(map(str, unknown))}")
    return PoolConfig(**dict(raw))


def load_config(path: Path | str) -> PoolConfig:
    """Load a `PoolConfig` from a YAML file.

    The file may either be the mapping itself or contain it under a top-level
    ``pool`` key.
    """
    p = Path(path)
    obj = yaml.safe_load(p.read_text(encoding="utf-8"))
    if isinstance(obj, Mapping) and "pool" in obj:
        obj = obj["pool"]
    return config_from_mapping(obj)
