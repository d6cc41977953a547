"""Configuration tests."""

from __future__ import annotations

import pytest

from truebalance import create_app_context
from truebalance import config as config_module
from truebalance.config import BaseConfig, DevConfig


def test_defaults_use_data_dir(data_dir):
    config = BaseConfig()

    assert config.DATA_DIR == data_dir.resolve()
    assert data_dir.is_dir()
    assert config.DATABASE_URL == f"sqlite:///{data_dir.resolve() / 'truebalance.db'}"
    assert config.DEFAULT_BUDGET == 500.0
    assert config.DEFAULT_STRATEGY == "SNOWBALL_LOWEST_BALANCE"
    assert config.DEV_MODE is True


def test_explicit_data_dir_overrides_environment(data_dir, tmp_path):
    override = tmp_path / "elsewhere"

    config = DevConfig(data_dir=override)

    assert config.DATA_DIR == override.resolve()
    assert override.is_dir()
    assert config.DATABASE_URL == f"sqlite:///{override.resolve() / 'truebalance.db'}"


def test_sqlite_engine_options_allow_cross_thread_use(data_dir):
    assert BaseConfig().sqlalchemy_engine_options() == {"connect_args": {"check_same_thread": False}}


def test_environment_overrides(data_dir, monkeypatch):
    monkeypatch.setenv("TRUEBALANCE_DEFAULT_BUDGET", "1250.50")
    monkeypatch.setenv("TRUEBALANCE_DEFAULT_STRATEGY", "avalanche")
    monkeypatch.setenv("TRUEBALANCE_DATABASE_URL", "sqlite:///:memory:")

    config = BaseConfig()

    assert config.DEFAULT_BUDGET == 1250.50
    assert config.DEFAULT_STRATEGY == "avalanche"
    assert config.DATABASE_URL == "sqlite:///:memory:"


def test_invalid_budget_is_rejected(data_dir, monkeypatch):
    monkeypatch.setenv("TRUEBALANCE_DEFAULT_BUDGET", "lots")

    with pytest.raises(ValueError, match="TRUEBALANCE_DEFAULT_BUDGET"):
        BaseConfig()


def test_production_mode_requires_secret(data_dir, monkeypatch):
    monkeypatch.setenv("TRUEBALANCE_DEV_MODE", "false")
    monkeypatch.delenv("TRUEBALANCE_SECRET_KEY", raising=False)

    with pytest.raises(ValueError, match="TRUEBALANCE_SECRET_KEY"):
        BaseConfig()

    monkeypatch.setenv("TRUEBALANCE_SECRET_KEY", "s3cret")
    assert BaseConfig().DEV_MODE is False


def test_config_variants(data_dir):
    assert DevConfig().DEBUG is True
    assert config_module.TestConfig().TESTING is True


def test_app_context_wires_plan_service(data_dir, monkeypatch):
    monkeypatch.setenv("TRUEBALANCE_DEFAULT_BUDGET", "640")
    monkeypatch.setenv("TRUEBALANCE_DEFAULT_STRATEGY", "avalanche")

    ctx = create_app_context(config_module.TestConfig())
    try:
        plan = ctx.plan_service.active_plan()
        assert plan.monthly_budget == 640.0
        assert plan.strategy == "AVALANCHE_HIGHEST_APR"
        assert (data_dir / "truebalance.db").exists()
    finally:
        ctx.engine.dispose()
