"""Compiler configuration.

Settings come from three layers, later layers winning:
    1. Dataclass defaults
    2. An optional YAML file (load_config(path))
    3. UNIFORGE_* environment variables

Example uniforge.yaml:

    output_dir: Assets/Uniforge_FastTrack/Generated
    pixels_per_unit: 100
    service_mode: context      # or 'static' for the legacy managers
    max_traversal_depth: 128
    max_emitted_nodes: 4096
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from uniforge.logging import get_logger
from uniforge.yaml import LoadError, load

log = get_logger('config')

SERVICE_MODES = ('context', 'static')


class ConfigError(Exception):
    """Raised when a configuration value is missing or invalid."""


@dataclass(frozen=True)
class CompilerConfig:
    """Settings that shape the generated source."""
    output_dir: str = "Assets/Uniforge_FastTrack/Generated"
    class_prefix: str = "Gen_"
    pixels_per_unit: float = 100.0  # Editor pixels per world unit
    arrive_epsilon: float = 0.05  # MoveToward stop distance, world units
    max_traversal_depth: int = 128  # Longest node path followed in one module walk
    max_emitted_nodes: int = 4096  # Nodes lowered per entity across all walks
    service_mode: str = "context"  # context | static
    context_type: str = "IUniforgeContext"
    runtime_namespace: str = "Uniforge.FastTrack.Runtime"
    health_field: str = "hp"
    default_health: float = 100.0
    indent: str = "    "

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check value ranges; raise ConfigError on the first problem."""
        if self.pixels_per_unit <= 0:
            raise ConfigError(f"pixels_per_unit must be positive, got {self.pixels_per_unit}")
        if self.arrive_epsilon < 0:
            raise ConfigError(f"arrive_epsilon must not be negative, got {self.arrive_epsilon}")
        if self.max_traversal_depth < 1:
            raise ConfigError(f"max_traversal_depth must be at least 1, got {self.max_traversal_depth}")
        if self.max_emitted_nodes < 1:
            raise ConfigError(f"max_emitted_nodes must be at least 1, got {self.max_emitted_nodes}")
        if self.service_mode not in SERVICE_MODES:
            raise ConfigError(
                f"service_mode must be one of {', '.join(SERVICE_MODES)}, got {self.service_mode!r}"
            )
        if not self.indent or self.indent.strip(' \t'):
            raise ConfigError("indent must be a non-empty run of spaces or tabs")
        if not self.class_prefix or not (self.class_prefix[0].isalpha() or self.class_prefix[0] == '_'):
            raise ConfigError(f"class_prefix must start with a letter or underscore, got {self.class_prefix!r}")
        if not self.health_field.isidentifier():
            raise ConfigError(f"health_field must be an identifier, got {self.health_field!r}")

    @property
    def uses_context(self) -> bool:
        return self.service_mode == 'context'

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CompilerConfig':
        """Build a config from a parsed mapping, converting value types."""
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

        defaults = cls()
        values: Dict[str, Any] = {}
        for name, value in data.items():
            values[name] = _convert(name, value, getattr(defaults, name))
        return replace(defaults, **values)


def _convert(name: str, value: Any, default: Any) -> Any:
    """Convert a raw value to the type of the field's default."""
    try:
        if isinstance(value, bool):
            raise ValueError(value)
        if isinstance(default, int):
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(value)
            return int(value)
        if isinstance(default, float):
            return float(value)
        if value is None:
            raise ValueError(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


ENV_PREFIX = 'UNIFORGE_'


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect UNIFORGE_<FIELD> overrides (e.g. UNIFORGE_PIXELS_PER_UNIT=64)."""
    environ = os.environ if environ is None else environ
    overrides = {}
    for f in fields(CompilerConfig):
        key = ENV_PREFIX + f.name.upper()
        if key in environ:
            overrides[f.name] = environ[key]
    return overrides


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CompilerConfig:
    """
    Load compiler configuration.

    Args:
        path: Optional YAML file; missing keys keep their defaults
        environ: Environment to read overrides from (default os.environ)

    Returns:
        Validated CompilerConfig

    Raises:
        ConfigError: If the file cannot be read or a value is invalid
    """
    data: Dict[str, Any] = {}
    if path is not None:
        try:
            loaded = load(path)
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {path}") from e
        except LoadError as e:
            raise ConfigError(f"Cannot parse config {path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config {path} must be a mapping, got {type(loaded).__name__}")
        data.update(loaded)
        log.debug("Loaded config from %s", path)

    overrides = env_overrides(environ)
    if overrides:
        log.debug("Environment overrides: %s", ', '.join(sorted(overrides)))
    data.update(overrides)

    return CompilerConfig.from_dict(data)
