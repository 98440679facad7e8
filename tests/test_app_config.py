import logging

import pytest

from app_config import AppConfig, load_config, setup_logging

ENV_VARS = [
    "COMMISSION_API_BASE_URL",
    "COMMISSION_PAGE_SIZE",
    "COMMISSION_DEBOUNCE_SECONDS",
    "COMMISSION_REQUEST_TIMEOUT",
    "COMMISSION_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    assert load_config() == AppConfig()
    config = load_config()
    assert config.api_base_url == "http://localhost:9000"
    assert config.page_size == 10
    assert config.debounce_seconds == 0.5
    assert config.request_timeout is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("COMMISSION_API_BASE_URL", "https://commissions.example.com/")
    monkeypatch.setenv("COMMISSION_PAGE_SIZE", "25")
    monkeypatch.setenv("COMMISSION_DEBOUNCE_SECONDS", "1.5")
    monkeypatch.setenv("COMMISSION_REQUEST_TIMEOUT", "10")
    monkeypatch.setenv("COMMISSION_LOG_LEVEL", "DEBUG")

    config = load_config()
    assert config.api_base_url == "https://commissions.example.com"
    assert config.page_size == 25
    assert config.debounce_seconds == 1.5
    assert config.request_timeout == 10.0
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("name,value", [
    ("COMMISSION_PAGE_SIZE", "ten"),
    ("COMMISSION_PAGE_SIZE", "0"),
    ("COMMISSION_DEBOUNCE_SECONDS", "soon"),
])
def test_invalid_numbers_name_the_variable(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        load_config()


def test_setup_logging_returns_app_logger():
    logger = setup_logging("debug")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "commission_desk"
