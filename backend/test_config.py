#!/usr/bin/env python3
"""
Tests for settings loading and the logging setup
"""

import logging
from pathlib import Path

from bindadmin.core.config import Settings
from bindadmin.core.logging_config import get_logger, setup_logging


def test_allowed_hosts_from_comma_separated_env(monkeypatch):
    monkeypatch.setenv("ALLOWED_HOSTS", "dns.example.com, 10.0.0.5,")
    settings = Settings()
    assert settings.ALLOWED_HOSTS == ["dns.example.com", "10.0.0.5"]


def test_named_conf_paths(monkeypatch):
    monkeypatch.setenv("NAMED_CONF_DIR", "/etc/bind")
    monkeypatch.setenv("NAMED_CONF_FILE", "named.conf.local")
    settings = Settings()
    assert settings.named_conf_path == Path("/etc/bind/named.conf.local")
    assert settings.config_dir == Path("/etc/bind")


def test_non_positive_limits_fall_back_to_defaults():
    settings = Settings(VALIDATOR_TIMEOUT=0, MAX_BACKUPS=-3)
    assert settings.VALIDATOR_TIMEOUT == 5.0
    assert settings.MAX_BACKUPS == 10


def test_unbounded_validator_timeout_is_rejected():
    assert Settings(VALIDATOR_TIMEOUT=float("inf")).VALIDATOR_TIMEOUT == 5.0


def test_logging_setup_writes_to_file(tmp_path, monkeypatch):
    log_file = tmp_path / "logs" / "bindadmin.log"
    monkeypatch.setenv("LOG_FILE", str(log_file))
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    from bindadmin.core import config
    config.get_settings.cache_clear()
    try:
        setup_logging()
        get_logger("bindadmin.test").info("named.conf written")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "named.conf written" in log_file.read_text()
    finally:
        config.get_settings.cache_clear()
        for handler in list(logging.getLogger().handlers):
            if isinstance(handler, logging.FileHandler):
                logging.getLogger().removeHandler(handler)
                handler.close()
