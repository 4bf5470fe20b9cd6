from pathlib import Path

from livetv_tui.config import (
    DEFAULT_PLAYLIST_URL,
    AppConfig,
    EngineOptions,
    load_config,
    save_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path / "config.yaml")
    assert config.playlist_url == DEFAULT_PLAYLIST_URL
    assert config.theme is None
    assert config.last_category is None
    assert config.engine == EngineOptions()


def test_load_and_save_round_trip(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.yaml"
    config = AppConfig(
        playlist_url="https://example.com/list.m3u",
        user_agent="LiveTV/1.0",
        preferred_player="vlc",
        theme="livetv-light",
        last_category="Sports",
        engine=EngineOptions(buffer_ahead_seconds=45, reconnect_attempts=2, low_latency=True),
    )
    save_config(config, config_path)
    raw = config_path.read_text()
    assert raw.splitlines()[0] == "playlist_url: https://example.com/list.m3u"
    assert "  buffer_ahead_seconds: 45" in raw.splitlines()
    assert load_config(config_path) == config


def test_defaults_are_not_written(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    save_config(AppConfig(), config_path)
    raw = config_path.read_text()
    assert "theme:" not in raw
    assert "last_category:" not in raw
    assert load_config(config_path) == AppConfig()


def test_load_config_accepts_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        '{"playlist_url": "/srv/list.m3u", "theme": "livetv-dark",'
        ' "engine": {"network_timeout_seconds": 20, "low_latency": "yes"}}'
    )
    config = load_config(config_path)
    assert config.playlist_url == "/srv/list.m3u"
    assert config.theme == "livetv-dark"
    assert config.engine.network_timeout_seconds == 20
    assert config.engine.low_latency is True
    assert config.engine.buffer_ahead_seconds == EngineOptions().buffer_ahead_seconds


def test_invalid_engine_values_fall_back(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "# comment\n"
        "playlist_url: \"http://example.com/a.m3u\"\n"
        "engine:\n"
        "  buffer_ahead_seconds: soon\n"
        "  max_buffer_bytes: -5\n"
        "  reconnect_attempts: 9\n"
    )
    config = load_config(config_path)
    defaults = EngineOptions()
    assert config.playlist_url == "http://example.com/a.m3u"
    assert config.engine.buffer_ahead_seconds == defaults.buffer_ahead_seconds
    assert config.engine.max_buffer_bytes == defaults.max_buffer_bytes
    assert config.engine.reconnect_attempts == 9


def test_empty_playlist_url_uses_default(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text('playlist_url: ""\ntheme: livetv-light\n')
    config = load_config(config_path)
    assert config.playlist_url == DEFAULT_PLAYLIST_URL
    assert config.theme == "livetv-light"
