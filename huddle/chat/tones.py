"""Cue tones: per-kind partials and envelopes, WAV rendering, and playback."""

import io
import logging
import math
import shutil
import subprocess
import wave
from array import array
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from huddle import config
from huddle.lib import paths

logger = logging.getLogger(__name__)


class CueKind(str, Enum):
    GENERIC = "generic"
    MENTION = "mention"
    SENT = "sent"
    RECEIVED = "received"


@dataclass(frozen=True)
class Partial:
    frequency: float
    gain: float
    end_gain: float


@dataclass(frozen=True)
class Tone:
    partials: tuple[Partial, ...]
    duration: float
    master_gain: float = 1.0
    master_end_gain: float = 1.0


TONES: dict[CueKind, Tone] = {
    # A5 with a fifth above.
    CueKind.GENERIC: Tone(
        (Partial(880.0, 0.2, 0.01), Partial(1320.0, 0.1, 0.005)),
        duration=0.4,
        master_gain=0.8,
        master_end_gain=0.01,
    ),
    # C6 + E6 chime, longer and louder than generic.
    CueKind.MENTION: Tone(
        (Partial(1046.50, 0.3, 0.01), Partial(1318.51, 0.2, 0.005)),
        duration=0.5,
        master_gain=0.7,
        master_end_gain=0.01,
    ),
    CueKind.SENT: Tone((Partial(600.0, 0.1, 0.001),), duration=0.1),
    CueKind.RECEIVED: Tone((Partial(700.0, 0.2, 0.001),), duration=0.3),
}


def _ramp(start: float, end: float, progress: float) -> float:
    """Exponential ramp from start to end, progress in [0, 1]."""
    return start * (end / start) ** progress


def render(tone: Tone, sample_rate: int | None = None) -> bytes:
    """Synthesize tone as a 16-bit mono WAV file."""
    rate = sample_rate or config.get("sample_rate", 22050)
    count = max(1, int(tone.duration * rate))
    samples = array("h")
    for i in range(count):
        t = i / rate
        progress = i / count
        value = sum(
            _ramp(p.gain, p.end_gain, progress) * math.sin(2 * math.pi * p.frequency * t)
            for p in tone.partials
        )
        value *= _ramp(tone.master_gain, tone.master_end_gain, progress)
        samples.append(int(max(-1.0, min(1.0, value)) * 32767))

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(samples.tobytes())
    return buf.getvalue()


def find_command(candidates: list[list[str]] | None = None) -> list[str] | None:
    for command in candidates if candidates is not None else config.get("players", []):
        if command and shutil.which(command[0]):
            return list(command)
    return None


class SubprocessPlayer:
    """Plays cues through the first available audio command without waiting for it."""

    def __init__(self, command: list[str] | None = None, cache_dir: Path | None = None):
        self.command = command
        self.cache_dir = cache_dir or paths.dot_huddle() / "sounds"
        self._resolved = command is not None
        self._children: list[subprocess.Popen] = []

    def _command(self) -> list[str] | None:
        if not self._resolved:
            self.command = find_command()
            self._resolved = True
            if self.command is None:
                logger.warning("No audio player found; cues are silent")
        return self.command

    def _wav(self, kind: CueKind) -> Path:
        path = self.cache_dir / f"{kind.value}.wav"
        if not path.exists():
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(render(TONES[kind]))
        return path

    def _reap(self) -> None:
        self._children = [child for child in self._children if child.poll() is None]

    def play(self, kind: CueKind) -> None:
        command = self._command()
        if command is None:
            return
        self._reap()
        try:
            child = subprocess.Popen(
                [*command, str(self._wav(kind))],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
            self._children.append(child)
        except OSError as e:
            logger.error(f"Playing {kind.value} cue failed: {e}")


class NullPlayer:
    """Renders but never plays. Keeps what it was asked to play."""

    def __init__(self, sample_rate: int = 8000):
        self.sample_rate = sample_rate
        self.played: list[CueKind] = []
        self.rendered: list[bytes] = []

    def play(self, kind: CueKind) -> None:
        self.played.append(kind)
        self.rendered.append(render(TONES[kind], self.sample_rate))
