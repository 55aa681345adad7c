import pytest
import pytest_asyncio

from huddle import config
from huddle.api import deps
from huddle.chat import cues, open_chat
from huddle.chat.cues import CueEngine
from huddle.chat.prefs import SoundPrefs
from huddle.chat.tones import NullPlayer
from huddle.lib import store
from huddle.lib.store import live as live_store


@pytest.fixture
def test_huddle(monkeypatch, tmp_path):
    """Isolated state directory and database per test.

    Provides:
    - HUDDLE_HOME pointing at tmp_path/.huddle (prefs, sounds, config overrides)
    - Isolated huddle.db instead of ~/.huddle/huddle.db, migrated
    - Fresh process-wide store, cue engine and API chat (setup + teardown reset)

    The process-wide cue engine uses a NullPlayer so nothing reaches the speakers.
    """
    store._reset_for_testing()
    live_store._reset_default()
    cues._reset_engine()
    deps._reset_chat()

    home = tmp_path / ".huddle"
    home.mkdir()
    monkeypatch.setenv("HUDDLE_HOME", str(home))
    monkeypatch.delenv("HUDDLE_USER", raising=False)
    store.set_test_db_path(home)
    config.clear_cache()
    store.ensure()

    monkeypatch.setattr(
        cues, "_engine", CueEngine(player=NullPlayer(), prefs=SoundPrefs(home / "prefs.yaml"))
    )

    yield home

    deps._reset_chat()
    cues._reset_engine()
    live_store._reset_default()
    store._reset_for_testing()
    config.clear_cache()


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeTimer:
    def __init__(self, when: float, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimers:
    """Stands in for loop.call_later; advance() moves the clock and fires due timers."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.pending: list[FakeTimer] = []

    def call_later(self, delay: float, callback) -> FakeTimer:
        timer = FakeTimer(self.clock.now + delay, callback)
        self.pending.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.clock.now + seconds
        while True:
            due = sorted(
                (t for t in self.pending if t.when <= target and not t.cancelled),
                key=lambda t: t.when,
            )
            if not due:
                break
            timer = due[0]
            self.pending.remove(timer)
            self.clock.now = timer.when
            timer.callback()
        self.pending = [t for t in self.pending if not t.cancelled]
        self.clock.now = target

    @property
    def armed(self) -> int:
        return sum(1 for t in self.pending if not t.cancelled)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def timers(fake_clock):
    return FakeTimers(fake_clock)


@pytest.fixture
def player():
    return NullPlayer()


@pytest.fixture
def engine(player, fake_clock, timers):
    """Unlocked engine with a 300ms cooldown, deterministic clock and timers."""
    cue_engine = CueEngine(
        player=player, cooldown_ms=300, clock=fake_clock, call_later=timers.call_later
    )
    cue_engine.unlock()
    yield cue_engine
    cue_engine.close()


@pytest.fixture
def chat(test_huddle, engine):
    return open_chat(live_store.default(), engine)


@pytest_asyncio.fixture
async def team(chat):
    """A team with Alice Smith, Bob Jones and Carol as active members."""
    created = await chat.directory.create_team("core")
    await chat.directory.add_member(created.team_id, "alice", "Alice Smith", "alice@example.com")
    await chat.directory.add_member(created.team_id, "bob", "Bob Jones", "bob@example.com")
    await chat.directory.add_member(created.team_id, "carol", "Carol", "carol@example.com")
    return created
