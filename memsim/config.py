"""
Configuration for memsim.

Settings are layered: dataclass defaults, then an optional JSON file, then
``MEMSIM_*`` environment variables, then explicit overrides.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import ConfigurationError
from .types.enums import FitStrategy

ENV_PREFIX = "MEMSIM_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class SimulatorConfig:
    total_size: int = 1024
    strategy: FitStrategy = FitStrategy.FIRST_FIT
    validate: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.total_size, bool) or not isinstance(self.total_size, int) or self.total_size <= 0:
            raise ConfigurationError(f"total_size must be a positive integer, got {self.total_size!r}")
        try:
            object.__setattr__(self, 'strategy', FitStrategy.parse(self.strategy))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        if not isinstance(self.validate, bool):
            raise ConfigurationError(f"validate must be a boolean, got {self.validate!r}")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)):
            raise ConfigurationError(f"seed must be an integer, got {self.seed!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SimulatorConfig:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> SimulatorConfig:
        path = Path(path)
        try:
            with path.open('r', encoding='utf-8') as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 base: Optional[SimulatorConfig] = None) -> SimulatorConfig:
        environ = os.environ if environ is None else environ
        config = base or cls()
        return config.with_overrides(**_read_env(environ))

    def with_overrides(self, **overrides: Any) -> SimulatorConfig:
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['strategy'] = self.strategy.label
        return data


def _env_value(environ: Mapping[str, str], name: str) -> Optional[str]:
    # unset and blank variables are both treated as absent
    raw = environ.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _read_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}

    raw = _env_value(environ, "TOTAL_SIZE")
    if raw is not None:
        values['total_size'] = _parse_int(raw, "TOTAL_SIZE")

    raw = _env_value(environ, "STRATEGY")
    if raw is not None:
        values['strategy'] = raw

    raw = _env_value(environ, "VALIDATE")
    if raw is not None:
        flag = raw.lower()
        if flag in _TRUE:
            values['validate'] = True
        elif flag in _FALSE:
            values['validate'] = False
        else:
            raise ConfigurationError(f"{ENV_PREFIX}VALIDATE must be a boolean, got {raw!r}")

    raw = _env_value(environ, "SEED")
    if raw is not None:
        values['seed'] = _parse_int(raw, "SEED")

    return values


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Mapping[str, str]] = None,
                **overrides: Any) -> SimulatorConfig:
    config = SimulatorConfig.from_file(path) if path is not None else SimulatorConfig()
    config = SimulatorConfig.from_env(environ, base=config)
    return config.with_overrides(**overrides)


__all__ = ['ENV_PREFIX', 'SimulatorConfig', 'load_config']
