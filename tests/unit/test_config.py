"""
Unit tests for ecoaudio.core.config.
"""

import pytest

from ecoaudio.core import config as config_module
from ecoaudio.core.config import (
    DEFAULT_CONFIG,
    Config,
    _migrate_deprecated_keys,
    create_default_config_file,
    find_config_file,
    get_config,
    get_default_config,
    load_config,
    load_config_cascade,
    load_toml,
    reset_config,
    save_toml,
)


@pytest.fixture
def isolated_locations(tmp_path, monkeypatch):
    """Search only a project file and a user file inside tmp_path."""
    project = tmp_path / "ecoaudio.toml"
    user = tmp_path / "user" / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_LOCATIONS", [project, user])
    reset_config()
    yield project, user
    reset_config()


class TestConfig:
    def test_defaults(self):
        config = get_default_config()
        assert config.get("spectrogram", "window_size") == 512
        assert config.get("noise_reduction", "type") == "standard"
        assert config.get("spectrogram", "missing", "fallback") == "fallback"
        assert config.get("no_such_section", "key", 1) == 1

    def test_defaults_are_copies(self):
        get_default_config().set("spectrogram", "window_size", 1024)
        assert DEFAULT_CONFIG["spectrogram"]["window_size"] == 512

    def test_set_unknown_section(self):
        with pytest.raises(KeyError):
            get_default_config().set("audio", "sample_rate", 16000)

    def test_round_trip_dict(self):
        config = Config.from_dict({"events": {"min_hz": 100}}, source="x.toml")
        assert config.events == {"min_hz": 100}
        assert config.spectrogram == {}
        assert config._source == "x.toml"
        assert set(config.to_dict()) >= {"spectrogram", "logging"}


class TestToml:
    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "cfg.toml"
        save_toml({"spectrogram": {"window_size": 256, "do_mel_scale": True, "name": 'a "b"'}, "empty": {}}, path)
        data = load_toml(path)
        assert data == {"spectrogram": {"window_size": 256, "do_mel_scale": True, "name": 'a "b"'}}

    def test_none_values_skipped(self, tmp_path):
        path = save_toml({"events": {"min_hz": None, "max_hz": 8000}}, tmp_path / "c.toml")
        assert load_toml(path) == {"events": {"max_hz": 8000}}

    def test_unsupported_value(self, tmp_path):
        with pytest.raises(TypeError):
            save_toml({"events": {"when": object()}}, tmp_path / "c.toml")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_toml(tmp_path / "nope.toml")

    def test_default_file_loads(self, tmp_path):
        path = create_default_config_file(str(tmp_path / "ecoaudio.toml"))
        assert load_toml(path) == DEFAULT_CONFIG


class TestDeprecatedKeys:
    def test_renamed(self):
        data = {"noise_reduction": {"noise_reduction_type": "modal"}}
        with pytest.warns(DeprecationWarning):
            migrated = _migrate_deprecated_keys(data)
        assert migrated["noise_reduction"] == {"type": "modal"}

    def test_new_key_wins(self):
        data = {"spectrogram": {"frame_size": 256, "window_size": 1024}}
        with pytest.warns(DeprecationWarning):
            migrated = _migrate_deprecated_keys(data)
        assert migrated["spectrogram"] == {"window_size": 1024}

    def test_event_and_index_keys(self):
        data = {"events": {"event_threshold": 9.0}, "indices": {"bg_noise_threshold_db": 4.0}}
        with pytest.warns(DeprecationWarning):
            migrated = _migrate_deprecated_keys(data)
        assert migrated["events"] == {"threshold": 9.0}
        assert migrated["indices"] == {"activity_threshold_db": 4.0}


class TestLoading:
    def test_find_explicit(self, tmp_path):
        path = tmp_path / "mine.toml"
        path.write_text("")
        assert find_config_file(str(path)) == path
        assert find_config_file(str(tmp_path / "missing.toml")) is None

    def test_load_config_merges(self, tmp_path):
        path = tmp_path / "mine.toml"
        path.write_text("[spectrogram]\nwindow_size = 1024\n")
        config = load_config(str(path))
        assert config.get("spectrogram", "window_size") == 1024
        assert config.get("spectrogram", "window_overlap") == 0.5
        assert config._source == str(path)

    def test_invalid_toml_falls_back(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[spectrogram\n")
        config = load_config(str(path))
        assert config.get("spectrogram", "window_size") == 512

    def test_cascade_priority(self, tmp_path, isolated_locations):
        project, user = isolated_locations
        user.parent.mkdir()
        user.write_text("[events]\nmin_hz = 100\nmax_hz = 4000\n")
        project.write_text("[events]\nmin_hz = 200\n")
        explicit = tmp_path / "explicit.toml"
        explicit.write_text("[batch]\nworkers = 8\n")

        config = load_config_cascade(str(explicit))

        assert config.get("events", "min_hz") == 200
        assert config.get("events", "max_hz") == 4000
        assert config.get("batch", "workers") == 8
        assert config._source == str(explicit)

    def test_cascade_defaults(self, isolated_locations):
        assert load_config_cascade()._source == "defaults"

    def test_global_config_cached(self, isolated_locations):
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first
