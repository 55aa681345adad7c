import os
from pathlib import Path


def dot_huddle() -> Path:
    """Returns the state directory, ~/.huddle (HUDDLE_HOME overrides)."""
    override = os.environ.get("HUDDLE_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".huddle"


def package_root() -> Path:
    return Path(__file__).resolve().parent.parent


def config_file() -> Path:
    return dot_huddle() / "config.yaml"


def prefs_file() -> Path:
    return dot_huddle() / "prefs.yaml"
