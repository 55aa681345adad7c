"""Audio cue engine.

One engine per process gates every cue source (mention feed, received and sent
messages, generic notifications). A cue plays immediately when nothing is
playing and the cooldown since the previous cue finished has elapsed; otherwise
a single timer is armed for the remaining delay and later requests only replace
the kind it will play. Until the host signals a user interaction (`unlock()`),
requests are silent no-ops.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from huddle import config

from .prefs import SoundPrefs
from .tones import TONES, CueKind, SubprocessPlayer

logger = logging.getLogger(__name__)

CallLater = Callable[[float, Callable[[], None]], Any]


class CueState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    PLAYING = "playing"


class Player(Protocol):
    def play(self, kind: CueKind) -> None: ...


class CueEngine:
    def __init__(
        self,
        player: Player | None = None,
        prefs: SoundPrefs | None = None,
        cooldown_ms: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        call_later: CallLater | None = None,
    ):
        self.player = player or SubprocessPlayer()
        self.prefs = prefs
        if cooldown_ms is None:
            cooldown_ms = config.get("cooldown_ms", 300)
        self.cooldown = cooldown_ms / 1000
        self._clock = clock
        self._call_later = call_later
        self._enabled = prefs.load() if prefs else True
        self._unlocked = False
        self._stop_watch: Callable[[], None] | None = None
        self._timer: Any = None
        self._pending: CueKind | None = None
        self._ready_at = -math.inf
        self._playing_until = -math.inf
        self.played = 0

    @property
    def unlocked(self) -> bool:
        return self._unlocked

    def unlock(self) -> None:
        """Record the first user interaction. There is no way back to locked."""
        if not self._unlocked:
            logger.debug("Cue engine unlocked")
        self._unlocked = True

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        """Applies to later requests; an armed timer still fires."""
        self._enabled = bool(enabled)
        if self.prefs is not None:
            try:
                self.prefs.save(self._enabled)
            except OSError as e:
                logger.warning(f"Saving sound preference failed: {e}")

    def _apply_external(self, enabled: bool) -> None:
        if enabled != self._enabled:
            logger.info(f"Sound notifications {'enabled' if enabled else 'disabled'} externally")
        self._enabled = enabled

    def watch_prefs(self) -> None:
        """Follow changes other processes make to the prefs file."""
        if self.prefs is not None and self._stop_watch is None:
            self._stop_watch = self.prefs.watch(self._apply_external)

    @property
    def state(self) -> CueState:
        if self._timer is not None:
            return CueState.SCHEDULED
        if self._clock() < self._playing_until:
            return CueState.PLAYING
        return CueState.IDLE

    def request_cue(self, kind: CueKind | str) -> bool:
        """Ask for a cue. Returns True if it played or is pending, False if dropped."""
        kind = CueKind(kind)
        if not self._unlocked or not self._enabled:
            return False

        if self._timer is not None:
            self._pending = kind
            return True

        now = self._clock()
        if now >= self._ready_at:
            self._play(kind, now)
            return True

        return self._schedule(kind, self._ready_at - now)

    def _schedule(self, kind: CueKind, delay: float) -> bool:
        call_later = self._call_later
        if call_later is None:
            try:
                call_later = asyncio.get_running_loop().call_later
            except RuntimeError:
                logger.debug(f"No event loop to defer {kind.value} cue; dropped")
                return False
        self._pending = kind
        self._timer = call_later(delay, self._fire)
        return True

    def _fire(self) -> None:
        kind = self._pending
        self._timer = None
        self._pending = None
        if kind is not None:
            self._play(kind, self._clock())

    def _play(self, kind: CueKind, now: float) -> None:
        duration = TONES[kind].duration
        self._playing_until = now + duration
        self._ready_at = now + duration + self.cooldown
        self.played += 1
        try:
            self.player.play(kind)
        except Exception:
            logger.error(f"Playing {kind.value} cue failed", exc_info=True)

    def reset(self) -> None:
        """Cancel any pending cue and forget cooldown history. Unlock is kept."""
        if self._timer is not None and hasattr(self._timer, "cancel"):
            self._timer.cancel()
        self._timer = None
        self._pending = None
        self._ready_at = -math.inf
        self._playing_until = -math.inf
        self.played = 0

    def close(self) -> None:
        self.reset()
        if self._stop_watch is not None:
            self._stop_watch()
            self._stop_watch = None


_engine: CueEngine | None = None


def get_engine() -> CueEngine:
    """The process-wide engine shared by every cue source."""
    global _engine
    if _engine is None:
        _engine = CueEngine(prefs=SoundPrefs())
    return _engine


def _reset_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.close()
    _engine = None
