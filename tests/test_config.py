"""
Unit tests for configuration loading and validation.
"""

import pytest
from mixdeck.config import Config, ConfigError


class TestConfigLoad:
    def test_missing_file_uses_defaults(self, tmp_path):
        config = Config.load(str(tmp_path / "missing.toml"))
        assert config.get("suggestions", "max_suggestions") == 3
        assert config["storage"]["backend"] == "sqlite"

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = tmp_path / "mixdeck.toml"
        path.write_text('[suggestions]\nmax_suggestions = 5\n')
        monkeypatch.setenv("MIXDECK_CONFIG_PATH", str(path))

        assert Config.load().get("suggestions", "max_suggestions") == 5

    def test_partial_file_filled_with_defaults(self, tmp_path):
        path = tmp_path / "mixdeck.toml"
        path.write_text('[timeline]\nmin_width_percent = 0.5\n')

        config = Config.load(str(path))
        assert config.get("timeline", "min_width_percent") == 0.5
        assert config.get("timeline", "default_duration_seconds") == 180
        assert config.get("batch", "inter_item_delay_seconds") == 1.0

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "mixdeck.toml"
        path.write_text("[storage\nbackend = ")
        with pytest.raises(ConfigError):
            Config.load(str(path))

    def test_defaults_are_independent(self):
        first = Config.defaults()
        first["suggestions"]["max_suggestions"] = 10
        assert Config.defaults()["suggestions"]["max_suggestions"] == 3

    def test_storage_path_unset_by_default(self):
        assert Config.defaults()["storage"]["path"] is None


class TestConfigValidation:
    def test_out_of_bounds(self):
        with pytest.raises(ConfigError):
            Config({"suggestions": {"max_suggestions": 0}})

    def test_negative_delay(self):
        with pytest.raises(ConfigError):
            Config({"batch": {"inter_item_delay_seconds": -1}})

    def test_non_numeric(self):
        with pytest.raises(ConfigError):
            Config({"timeline": {"min_width_percent": "wide"}})

    def test_unknown_backend(self):
        with pytest.raises(ConfigError):
            Config({"storage": {"backend": "redis"}})

    def test_repr(self):
        assert repr(Config.defaults()) == "Config(version=1.0)"
