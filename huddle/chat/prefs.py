"""Persistent sound on/off flag in ~/.huddle/prefs.yaml, with change watching."""

import logging
from collections.abc import Callable
from pathlib import Path

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from huddle.lib import paths

logger = logging.getLogger(__name__)

KEY = "sound_notifications_enabled"


class PrefsFileHandler(FileSystemEventHandler):
    def __init__(self, prefs: "SoundPrefs", callback: Callable[[bool], None]):
        self.prefs = prefs
        self.callback = callback

    def _changed(self, event) -> None:
        if event.is_directory:
            return
        touched = {getattr(event, "src_path", ""), getattr(event, "dest_path", "")}
        if str(self.prefs.path) not in touched:
            return
        try:
            self.callback(self.prefs.load())
        except Exception:
            logger.error("Applying changed sound preference failed", exc_info=True)

    def on_modified(self, event):
        self._changed(event)

    def on_created(self, event):
        self._changed(event)

    def on_moved(self, event):
        self._changed(event)


class SoundPrefs:
    def __init__(self, path: Path | None = None):
        self.path = path or paths.prefs_file()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Unreadable prefs file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> bool:
        """Sound is on unless explicitly turned off."""
        return self._read().get(KEY, True) is not False

    def save(self, enabled: bool) -> None:
        data = self._read()
        data[KEY] = bool(enabled)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False)

    def watch(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Call callback(enabled) whenever the file changes. Returns a stop function."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        observer = Observer()
        observer.schedule(PrefsFileHandler(self, callback), str(self.path.parent), recursive=False)
        observer.start()
        stopped = False

        def stop() -> None:
            nonlocal stopped
            if stopped:
                return
            stopped = True
            observer.stop()
            observer.join()

        return stop
