import io
import subprocess
import wave
from unittest.mock import MagicMock, patch

from huddle.chat import tones
from huddle.chat.tones import TONES, CueKind, NullPlayer, SubprocessPlayer, find_command, render


def _frames(data: bytes) -> tuple[int, int, int, int]:
    with wave.open(io.BytesIO(data)) as wav:
        return wav.getnchannels(), wav.getsampwidth(), wav.getframerate(), wav.getnframes()


def test_render_is_16bit_mono_wav_of_tone_length():
    data = render(TONES[CueKind.MENTION], sample_rate=8000)
    assert _frames(data) == (1, 2, 8000, int(0.5 * 8000))


def test_every_kind_has_a_tone():
    assert set(TONES) == set(CueKind)


def test_mention_differs_from_generic_and_received():
    mention = TONES[CueKind.MENTION]
    for other in (CueKind.GENERIC, CueKind.RECEIVED):
        assert {p.frequency for p in mention.partials} != {
            p.frequency for p in TONES[other].partials
        }
    assert render(mention, 8000) != render(TONES[CueKind.GENERIC], 8000)


def test_envelope_decays():
    data = render(TONES[CueKind.RECEIVED], sample_rate=8000)
    with wave.open(io.BytesIO(data)) as wav:
        frames = wav.readframes(wav.getnframes())
    samples = [int.from_bytes(frames[i : i + 2], "little", signed=True) for i in range(0, len(frames), 2)]
    quarter = len(samples) // 4
    assert max(map(abs, samples[:quarter])) > max(map(abs, samples[-quarter:]))


def test_find_command_takes_first_available():
    with patch("huddle.chat.tones.shutil.which", side_effect=lambda c: c == "aplay"):
        assert find_command([["afplay"], ["aplay", "-q"]]) == ["aplay", "-q"]
    with patch("huddle.chat.tones.shutil.which", return_value=None):
        assert find_command([["afplay"]]) is None


def test_subprocess_player_spawns_without_waiting(tmp_path):
    player = SubprocessPlayer(command=["aplay", "-q"], cache_dir=tmp_path)
    with patch("huddle.chat.tones.subprocess.Popen") as popen:
        player.play(CueKind.SENT)

    args = popen.call_args[0][0]
    assert args[:2] == ["aplay", "-q"]
    assert args[2].endswith("sent.wav")
    assert popen.call_args[1]["stdout"] is subprocess.DEVNULL
    assert (tmp_path / "sent.wav").exists()


def test_subprocess_player_reaps_finished_players(tmp_path):
    player = SubprocessPlayer(command=["aplay"], cache_dir=tmp_path)
    finished, running, latest = MagicMock(), MagicMock(), MagicMock()
    finished.poll.return_value = 0
    running.poll.return_value = None
    spawned = [finished, running, latest]
    with patch("huddle.chat.tones.subprocess.Popen", side_effect=spawned) as popen:
        player.play(CueKind.SENT)
        player.play(CueKind.SENT)
        player.play(CueKind.RECEIVED)

    assert player._children == [running, latest]
    finished.poll.assert_called()
    assert popen.call_args[1]["stdin"] is subprocess.DEVNULL
    assert popen.call_args[1]["start_new_session"] is True


def test_subprocess_player_logs_failures(tmp_path, caplog):
    player = SubprocessPlayer(command=["aplay"], cache_dir=tmp_path)
    with patch("huddle.chat.tones.subprocess.Popen", side_effect=OSError("gone")):
        player.play(CueKind.GENERIC)
    assert "generic cue failed" in caplog.text


def test_subprocess_player_without_command_is_silent(tmp_path):
    player = SubprocessPlayer(cache_dir=tmp_path)
    with (
        patch.object(tones, "find_command", return_value=None),
        patch("huddle.chat.tones.subprocess.Popen") as popen,
    ):
        player.play(CueKind.GENERIC)
        player.play(CueKind.GENERIC)
    popen.assert_not_called()


def test_null_player_records():
    player = NullPlayer()
    player.play(CueKind.MENTION)
    assert player.played == [CueKind.MENTION]
    assert player.rendered[0][:4] == b"RIFF"
