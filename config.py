"""
Node configuration: the neighbour list file and optional YAML settings.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from routing import Address
from transport import DEFAULT_PORT

COMMENT_PREFIX = "#"


class ConfigError(Exception):
    """Neighbour file or settings cannot be used; the node must not start."""


@dataclass(frozen=True)
class NodeSettings:
    port: int = DEFAULT_PORT
    bind_host: str = "0.0.0.0"
    advert_interval: float = 15.0
    liveness_check_interval: float = 5.0
    neighbor_timeout: float = 35.0
    table_log_interval: float = 20.0

    def with_overrides(self, **overrides: Any) -> "NodeSettings":
        """Copy with every non-None override applied."""
        return _validated(replace(self, **{k: v for k, v in overrides.items() if v is not None}))


def load_neighbors(path: Path, self_address: Address) -> Tuple[Address, ...]:
    """
    Read the neighbour list: one address per line, '#' comments and blank
    lines skipped, the local address and duplicates dropped.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot read neighbour file {path}: {exc}") from exc

    neighbors: Dict[Address, None] = {}
    for line in text.splitlines():
        address = line.strip()
        if not address or address.startswith(COMMENT_PREFIX) or address == self_address:
            continue
        neighbors.setdefault(address, None)
    return tuple(neighbors)


def load_settings(path: Optional[Path]) -> NodeSettings:
    """
    Load NodeSettings from YAML; None means defaults.
    """
    if path is None:
        return NodeSettings()

    import yaml  # type: ignore

    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    if data is None:
        return NodeSettings()
    if not isinstance(data, Mapping):
        raise ConfigError(f"settings file {path} must contain a mapping")
    return settings_from_mapping(data)


def settings_from_mapping(data: Mapping[str, Any]) -> NodeSettings:
    known = {f.name: f for f in fields(NodeSettings)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"unknown settings: {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    for name, value in data.items():
        default = getattr(NodeSettings, name)
        try:
            if isinstance(default, str):
                values[name] = str(value)
            elif isinstance(default, int) and not isinstance(value, bool):
                values[name] = int(value)
            elif isinstance(default, float) and not isinstance(value, bool):
                values[name] = float(value)
            else:
                raise TypeError(f"unexpected {type(value).__name__}")
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid value for {name}: {value!r}") from exc
    return _validated(NodeSettings(**values))


def _validated(settings: NodeSettings) -> NodeSettings:
    if not 0 < settings.port < 65536:
        raise ConfigError(f"port out of range: {settings.port}")
    for name in ("advert_interval", "liveness_check_interval", "neighbor_timeout"):
        if getattr(settings, name) <= 0:
            raise ConfigError(f"{name} must be positive")
    if settings.table_log_interval < 0:
        raise ConfigError("table_log_interval must not be negative")
    return settings
