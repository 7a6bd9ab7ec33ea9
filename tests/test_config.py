"""Config loading: default.toml plus profile overlay."""

import logging

import pytest

from duelmarkets.config import Settings, configure_logging, get_settings, load_config


def test_profile_overlays_default(tmp_path):
    (tmp_path / "default.toml").write_text(
        '[storage]\ndb_path = "data/a.duckdb"\n[market]\ndefault_liquidity = 250.0\nredemption_unit = 1000000\n'
    )
    (tmp_path / "dev.toml").write_text('[storage]\ndb_path = "data/dev.duckdb"\n[logging]\nlevel = "debug"\n')

    base = get_settings(None, tmp_path)
    assert base.db_path == "data/a.duckdb"
    assert base.default_liquidity == 250.0
    assert base.logging_level == "INFO"

    dev = get_settings("dev", tmp_path)
    assert dev.db_path == "data/dev.duckdb"
    assert dev.default_liquidity == 250.0
    assert dev.logging_level == "DEBUG"
    assert load_config("missing-profile", tmp_path) == load_config(None, tmp_path)


def test_missing_config_dir_falls_back_to_defaults(tmp_path):
    settings = get_settings(None, tmp_path)
    assert settings.default_outcome_count == 3
    assert settings.redemption_unit == 1_000_000
    assert settings.fee_bps == 0
    assert settings.oracle_api_base.startswith("https://")


def test_api_key_read_from_named_env(tmp_path, monkeypatch):
    (tmp_path / "default.toml").write_text('[oracle]\napi_key_env = "MY_KEY"\n')
    monkeypatch.setenv("MY_KEY", "abc")
    assert get_settings(None, tmp_path).oracle_api_key == "abc"


def test_invalid_market_section_rejected(tmp_path):
    (tmp_path / "default.toml").write_text("[market]\ndefault_outcome_count = 1\n")
    with pytest.raises(ValueError):
        get_settings(None, tmp_path)
    (tmp_path / "default.toml").write_text("[market]\nfee_bps = 10001\n")
    with pytest.raises(ValueError):
        get_settings(None, tmp_path)


def test_logging_level_names():
    settings = Settings.from_dict({"logging": {"level": "warning", "format": "json"}})
    assert settings.logging_level_num == logging.WARNING
    assert Settings.from_dict({"logging": {"level": "nonsense"}}).logging_level_num == logging.INFO


def test_configure_logging_applies_level_filter():
    structlog = pytest.importorskip("structlog")
    try:
        configure_logging(Settings.from_dict({"logging": {"level": "ERROR", "format": "json"}}))
        assert structlog.is_configured()
        assert structlog.get_config()["cache_logger_on_first_use"] is True
    finally:
        structlog.reset_defaults()
