from functools import lru_cache
from pathlib import Path

import yaml

from huddle.lib import paths


def get_default_config_path() -> Path:
    return paths.package_root() / "config.yaml"


def clear_cache():
    load_config.cache_clear()


def _read(path: Path) -> dict:
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache(maxsize=1)
def load_config() -> dict:
    """Load packaged defaults overlaid with ~/.huddle/config.yaml."""
    cfg = _read(get_default_config_path())
    cfg.update(_read(paths.config_file()))
    return cfg


def get(key: str, default=None):
    return load_config().get(key, default)
