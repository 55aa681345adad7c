from huddle import config
from huddle.lib import paths


def test_config_loads_default_values(tmp_path, monkeypatch):
    monkeypatch.setenv("HUDDLE_HOME", str(tmp_path))
    config.clear_cache()

    cfg = config.load_config()
    assert cfg["cooldown_ms"] == 300
    assert cfg["message_limit"] == 100
    assert cfg["history_limit"] == 50
    assert ["afplay"] in cfg["players"]
    config.clear_cache()


def test_user_config_overrides_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("HUDDLE_HOME", str(tmp_path))
    (tmp_path / "config.yaml").write_text("cooldown_ms: 1000\n")
    config.clear_cache()

    assert paths.config_file() == tmp_path / "config.yaml"
    assert config.get("cooldown_ms") == 1000
    assert config.get("history_limit") == 50
    assert config.get("missing", "fallback") == "fallback"
    config.clear_cache()
