import logging

FORMAT = "[huddle] %(levelname)s %(name)s: %(message)s"


def setup(level: str | int = "WARNING") -> None:
    """Configure root logging for CLI and API entry points."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=FORMAT)
    logging.getLogger().setLevel(level)
