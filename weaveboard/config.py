"""Configuration management for WeaveBoard.

Values come from three places, later ones winning:

1. `WeaveConfig` defaults
2. `~/.weaveboard/config.yaml` (override the directory with `WEAVE_CONFIG_DIR`)
3. Environment variables (`WEAVE_DATA_DIR`, `WEAVE_MODEL`, `WEAVE_LOG_LEVEL`),
   including any `.env` file found in the working directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "anthropic/claude-opus-4-6"


def config_dir() -> Path:
    override = (os.environ.get("WEAVE_CONFIG_DIR") or "").strip()
    if override:
        return Path(override)
    return Path.home() / ".weaveboard"


def config_file() -> Path:
    return config_dir() / "config.yaml"


@dataclass
class WeaveConfig:
    """WeaveBoard configuration."""

    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    data_dir: Optional[str] = None  # None = ~/.weaveboard/data
    metadata_quota_bytes: int = 5 * 1024 * 1024
    save_debounce_s: float = 0.5
    status_reset_s: float = 2.0
    edge_offset_unit: float = 28.0
    log_level: str = "WARNING"

    def resolved_data_dir(self) -> Path:
        if self.data_dir:
            p = Path(self.data_dir).expanduser()
            return p if p.is_absolute() else (Path.cwd() / p).resolve()
        return config_dir() / "data"

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


_ENV_OVERRIDES = {
    "WEAVE_DATA_DIR": "data_dir",
    "WEAVE_MODEL": "model",
    "WEAVE_LOG_LEVEL": "log_level",
}


def _coerce(name: str, value: Any) -> Any:
    default = getattr(WeaveConfig, name, None)
    if isinstance(default, bool) or value is None:
        return value
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


def load_config(*, load_env: bool = True) -> WeaveConfig:
    """Load config from YAML and the environment. A broken file means defaults."""
    if load_env:
        load_dotenv()

    data: Dict[str, Any] = {}
    path = config_file()
    if path.exists():
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if isinstance(raw, dict):
                data = raw
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable config %s: %s", path, e)

    known = {f.name for f in fields(WeaveConfig)}
    kwargs: Dict[str, Any] = {}
    for k, v in data.items():
        if k not in known:
            continue
        try:
            kwargs[k] = _coerce(k, v)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid config value %s=%r", k, v)

    for env_name, attr in _ENV_OVERRIDES.items():
        value = (os.environ.get(env_name) or "").strip()
        if value:
            kwargs[attr] = value

    return WeaveConfig(**kwargs)


def save_config(config: WeaveConfig) -> Path:
    """Save config to the YAML config file."""
    path = config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(config.to_dict(), default_flow_style=False), encoding="utf-8")
    return path
