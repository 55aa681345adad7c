import asyncio

import pytest

from huddle.chat import cues
from huddle.chat.cues import CueEngine, CueKind, CueState, get_engine
from huddle.chat.prefs import SoundPrefs
from huddle.chat.tones import TONES, NullPlayer


def test_locked_engine_is_silent(player, fake_clock, timers):
    engine = CueEngine(player=player, cooldown_ms=300, clock=fake_clock, call_later=timers.call_later)
    assert engine.request_cue(CueKind.MENTION) is False
    assert player.played == []
    assert timers.armed == 0


def test_unlock_is_one_shot(engine):
    engine.unlock()
    engine.reset()
    assert engine.unlocked is True


def test_idle_request_plays_immediately(engine, player):
    assert engine.state == CueState.IDLE
    assert engine.request_cue("generic") is True
    assert player.played == [CueKind.GENERIC]
    assert engine.state == CueState.PLAYING


def test_burst_plays_at_most_one_tone_per_window(engine, player, timers):
    for _ in range(10):
        engine.request_cue(CueKind.RECEIVED)
        timers.advance(0.02)

    # One played now, one deferred, nothing else queued.
    assert player.played == [CueKind.RECEIVED]
    assert timers.armed == 1
    assert engine.state == CueState.SCHEDULED


def test_scheduled_cue_fires_after_tone_plus_cooldown(engine, player, timers, fake_clock):
    start = fake_clock.now
    engine.request_cue(CueKind.SENT)
    engine.request_cue(CueKind.RECEIVED)

    ready = start + TONES[CueKind.SENT].duration + 0.3
    timers.advance(ready - start - 0.01)
    assert player.played == [CueKind.SENT]

    timers.advance(0.02)
    assert player.played == [CueKind.SENT, CueKind.RECEIVED]


def test_coalesced_requests_play_last_kind(engine, player, timers):
    engine.request_cue(CueKind.GENERIC)
    engine.request_cue(CueKind.RECEIVED)
    engine.request_cue(CueKind.MENTION)
    assert timers.armed == 1

    timers.advance(5)
    assert player.played == [CueKind.GENERIC, CueKind.MENTION]


def test_no_overlap_between_played_tones(player, fake_clock, timers):
    starts = []
    engine = CueEngine(
        player=player, cooldown_ms=300, clock=fake_clock, call_later=timers.call_later
    )
    engine.unlock()
    real_play = engine._play

    def recording_play(kind, now):
        starts.append((now, kind))
        real_play(kind, now)

    engine._play = recording_play
    for _ in range(30):
        engine.request_cue(CueKind.MENTION)
        timers.advance(0.1)
    timers.advance(5)

    for (t1, k1), (t2, _) in zip(starts, starts[1:]):
        assert t2 - t1 >= TONES[k1].duration + 0.3 - 1e-9


def test_request_after_cooldown_plays_immediately(engine, player, timers):
    engine.request_cue(CueKind.GENERIC)
    timers.advance(TONES[CueKind.GENERIC].duration + 0.3 + 0.01)
    assert engine.state == CueState.IDLE
    engine.request_cue(CueKind.GENERIC)
    assert player.played == [CueKind.GENERIC, CueKind.GENERIC]
    assert timers.armed == 0


def test_disabled_requests_are_noops(engine, player):
    engine.set_enabled(False)
    assert engine.request_cue(CueKind.MENTION) is False
    assert player.played == []


def test_disabling_does_not_cancel_pending_cue(engine, player, timers):
    engine.request_cue(CueKind.GENERIC)
    engine.request_cue(CueKind.MENTION)
    engine.set_enabled(False)

    timers.advance(5)
    assert player.played == [CueKind.GENERIC, CueKind.MENTION]


def test_reset_cancels_pending_and_clears_history(engine, player, timers):
    engine.request_cue(CueKind.GENERIC)
    engine.request_cue(CueKind.MENTION)
    engine.reset()

    assert engine.state == CueState.IDLE
    timers.advance(5)
    assert player.played == [CueKind.GENERIC]

    engine.request_cue(CueKind.MENTION)
    assert player.played == [CueKind.GENERIC, CueKind.MENTION]


def test_player_failure_is_logged_not_raised(fake_clock, timers, caplog):
    class BrokenPlayer:
        def play(self, kind):
            raise OSError("no audio device")

    engine = CueEngine(player=BrokenPlayer(), clock=fake_clock, call_later=timers.call_later)
    engine.unlock()
    assert engine.request_cue(CueKind.MENTION) is True
    assert "mention cue failed" in caplog.text


def test_without_event_loop_deferred_cue_is_dropped(player, fake_clock):
    engine = CueEngine(player=player, cooldown_ms=300, clock=fake_clock)
    engine.unlock()
    engine.request_cue(CueKind.GENERIC)
    assert engine.request_cue(CueKind.GENERIC) is False
    assert engine.state == CueState.PLAYING


@pytest.mark.asyncio
async def test_uses_running_loop_timer_by_default(player):
    engine = CueEngine(player=player, cooldown_ms=10)
    engine.unlock()
    engine.request_cue(CueKind.SENT)
    engine.request_cue(CueKind.RECEIVED)
    assert engine.state == CueState.SCHEDULED

    await asyncio.sleep(TONES[CueKind.SENT].duration + 0.1)
    assert player.played == [CueKind.SENT, CueKind.RECEIVED]


def test_set_enabled_persists(tmp_path, player):
    prefs = SoundPrefs(tmp_path / "prefs.yaml")
    engine = CueEngine(player=player, prefs=prefs)
    engine.set_enabled(False)

    assert prefs.load() is False
    assert CueEngine(player=player, prefs=prefs).enabled is False


def test_external_pref_change_applies_without_write_back(tmp_path, player):
    prefs = SoundPrefs(tmp_path / "prefs.yaml")
    engine = CueEngine(player=player, prefs=prefs)
    engine._apply_external(False)

    assert engine.enabled is False
    assert not prefs.path.exists()


def test_get_engine_is_shared(test_huddle):
    assert get_engine() is get_engine()
    assert isinstance(get_engine().player, NullPlayer)


def test_get_engine_builds_one_when_unset(monkeypatch, tmp_path):
    monkeypatch.setenv("HUDDLE_HOME", str(tmp_path))
    monkeypatch.setattr(cues, "_engine", None)
    engine = get_engine()
    assert get_engine() is engine
    assert engine.unlocked is False
    engine.close()
