import logging
from functools import lru_cache

import yaml

from devinit.errors import ConfigError
from devinit.lib import paths

DEFAULT_LOG_LEVEL = "WARNING"

_STRING_KEYS = ("editor", "log_level")


def _validate_config(cfg: dict) -> None:
    """Validate config structure. Fail fast on invalid types."""
    if not isinstance(cfg, dict):
        raise ConfigError(f"Config must be a mapping, got {type(cfg).__name__}")

    for key in _STRING_KEYS:
        if key in cfg and cfg[key] is not None and not isinstance(cfg[key], str):
            raise ConfigError(f"Config '{key}' must be a string")

    level = cfg.get("log_level")
    if level and not isinstance(logging.getLevelName(level.upper()), int):
        raise ConfigError(f"Config 'log_level' is not a logging level: {level}")


def clear_cache():
    load_config.cache_clear()


@lru_cache(maxsize=1)
def load_config() -> dict:
    """Load config.yaml, returning its content or an empty dict if not found."""
    path = paths.config_file()
    if not path.exists():
        return {}
    with open(path) as f:
        try:
            cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse {path}: {e}") from e
    _validate_config(cfg)
    return cfg


def save_config(cfg: dict) -> None:
    _validate_config(cfg)
    path = paths.config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(cfg, f, default_flow_style=False, sort_keys=True)
    clear_cache()


def editor() -> str | None:
    """Editor command for manifest editing, or None to let click pick one."""
    return load_config().get("editor") or None


def set_editor(command: str) -> None:
    cfg = dict(load_config())
    cfg["editor"] = command
    save_config(cfg)


def log_level() -> int:
    name = load_config().get("log_level") or DEFAULT_LOG_LEVEL
    return logging.getLevelName(name.upper())
