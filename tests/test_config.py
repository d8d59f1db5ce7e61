# tests/test_config.py

import pytest

from clinic_dashboard.config import Config, StoreConfig, config


@pytest.fixture
def reloaded_settings():
    """Reload app settings from the (patched) environment, restoring them afterwards."""
    saved = config._app_config

    def reload():
        config._load_app_config()
        return config

    yield reload
    config._app_config = saved


def test_config_is_a_singleton():
    assert Config() is config


def test_settings_read_from_environment(monkeypatch, reloaded_settings):
    monkeypatch.setenv("TREND_RANDOM_SEED", "42")
    monkeypatch.setenv("ENABLE_EXPORT", "false")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    cfg = reloaded_settings()

    assert cfg.get_app_setting("TREND_RANDOM_SEED") == 42
    assert cfg.get_app_setting("LOG_LEVEL") == "DEBUG"
    assert cfg.is_feature_enabled("EXPORT") is False


def test_bad_values_fall_back_to_defaults(monkeypatch, reloaded_settings):
    monkeypatch.setenv("CACHE_TTL_SECONDS", "five minutes")
    monkeypatch.setenv("TREND_RANDOM_SEED", "")
    monkeypatch.delenv("ENABLE_DEBUG_MODE", raising=False)

    cfg = reloaded_settings()

    assert cfg.get_app_setting("CACHE_TTL_SECONDS") == 300
    assert cfg.get_app_setting("TREND_RANDOM_SEED") is None
    assert cfg.get_app_setting("TREND_RANDOM_SEED", 7) == 7
    assert cfg.is_feature_enabled("DEBUG_MODE") is False


def test_store_config_flags():
    assert StoreConfig().is_sqlite()
    assert not StoreConfig().is_in_memory()
    assert StoreConfig(url="sqlite://").is_in_memory()
    assert not StoreConfig(url="mysql+pymysql://u:p@host/db").is_sqlite()
