"""Tests for settings loading and environment overrides."""

import os

import pytest

from exchmux.config import _apply_env_overrides, load_settings
from exchmux.settings import Settings

CONFIG_YAML = """
env: prod
proxy:
  enabled: true
  url: http://127.0.0.1:8080
  username: user
  password: hunter2
runtime:
  max_workers: 4
exchanges:
  binance:
    symbols: [btc/usdt, ETH-USDT]
    credentials:
      api_key: key
      api_secret: secret
  kraken:
    enabled: false
    symbols: [XRPUSD]
"""


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("EXCHMUX_"):
            monkeypatch.delenv(key)
    path = tmp_path / "config.yml"
    path.write_text(CONFIG_YAML)
    return path


class TestLoadSettings:
    def test_load_yaml(self, config_file):
        settings = load_settings(config_file)

        assert settings.env == "prod"
        assert settings.runtime.max_workers == 4
        assert settings.exchanges["binance"].symbols == ["BTCUSDT", "ETHUSDT"]
        assert settings.exchanges["binance"].credentials.api_secret.get_secret_value() == "secret"
        assert settings.exchanges["kraken"].enabled is False
        assert settings.observer.interval == 1.0

    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("EXCHMUX_CONFIG", raising=False)
        settings = load_settings(tmp_path / "absent.yml")

        assert settings == Settings()

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("EXCHMUX_RUNTIME__MAX_WORKERS", "16")
        monkeypatch.setenv("EXCHMUX_EXCHANGES__BINANCE__SANDBOX", "true")
        monkeypatch.setenv("EXCHMUX_EXCHANGES__BINANCE__SYMBOLS", "solusdt,bnb-usdt")

        settings = load_settings(config_file)

        assert settings.runtime.max_workers == 16
        assert settings.exchanges["binance"].sandbox is True
        assert settings.exchanges["binance"].symbols == ["SOLUSDT", "BNBUSDT"]

    def test_config_path_from_env(self, config_file, monkeypatch):
        monkeypatch.setenv("EXCHMUX_CONFIG", str(config_file))

        assert load_settings().env == "prod"

    def test_invalid_value(self, config_file, monkeypatch):
        monkeypatch.setenv("EXCHMUX_RUNTIME__MAX_WORKERS", "0")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_settings(config_file)

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("runtime:\n  threads: 4\n")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_settings(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            load_settings(path)


class TestEnvOverrides:
    def test_reserved_and_foreign_variables_ignored(self):
        environ = {
            "EXCHMUX_CONFIG": "other.yml",
            "EXCHMUX_LOG_LEVEL": "DEBUG",
            "HOME": "/root",
        }

        assert _apply_env_overrides({"env": "dev"}, environ) == {"env": "dev"}

    def test_nested_keys_created(self):
        result = _apply_env_overrides({}, {"EXCHMUX_OBSERVER__INTERVAL": "0.5"})

        assert result == {"observer": {"interval": 0.5}}

    def test_input_not_mutated_at_top_level(self):
        data = {"env": "dev"}
        _apply_env_overrides(data, {"EXCHMUX_ENV": "prod"})

        assert data == {"env": "dev"}


class TestSettings:
    def test_redacted_hides_secrets(self, config_file):
        redacted = load_settings(config_file).redacted()

        assert redacted["exchanges"]["binance"]["credentials"] == {"api_key": "***", "api_secret": "***"}
        assert redacted["proxy"]["password"] == "***"

    def test_proxy_as_dict(self, config_file):
        settings = load_settings(config_file)

        assert settings.proxy.as_dict() == {
            "url": "http://127.0.0.1:8080",
            "username": "user",
            "password": "hunter2",
        }
        assert Settings().proxy.as_dict() is None
