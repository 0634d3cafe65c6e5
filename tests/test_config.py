"""
Configuration and logging tests
"""

import json
import logging
import os

from aegis.common import config
from aegis.common.logger import get_logger


def test_app_dir_is_created(aegis_home):
    assert not aegis_home.exists()
    assert config.app_dir() == str(aegis_home)
    assert aegis_home.is_dir()


def test_defaults(aegis_home, monkeypatch):
    monkeypatch.delenv("AEGIS_LOG_LEVEL", raising=False)
    assert config.identity_tag() == "aegis.rsa4096.priv"
    assert config.keystore_backend() == "file"
    assert config.key_passphrase() is None
    assert config.log_level() == "WARNING"
    assert config.log_file() == os.path.join(str(aegis_home), "aegis_error.log")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AEGIS_KEYSTORE", " Memory ")
    monkeypatch.setenv("AEGIS_KEY_PASSPHRASE", "pw")
    monkeypatch.setenv("AEGIS_LOG_LEVEL", "debug")
    monkeypatch.setenv("DB_PORT", "3307")

    assert config.keystore_backend() == "memory"
    assert config.key_passphrase() == b"pw"
    assert config.log_level() == "DEBUG"
    assert config.db_settings()["port"] == 3307


def test_error_log_is_json_and_error_only(tmp_path):
    path = tmp_path / "errors.log"
    logger = get_logger("aegis.tests.config", to_file=str(path))
    get_logger("aegis.tests.config", to_file=str(path))

    logger.warning("not recorded")
    logger.error("boom %d", 42)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["level"] == "ERROR"
    assert record["msg"] == "boom 42"
    assert record["ts"].endswith("Z")

    file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    assert [h.baseFilename for h in file_handlers].count(str(path)) == 1


def test_explicit_log_file_skips_app_dir(aegis_home, tmp_path, monkeypatch):
    target = str(tmp_path / "elsewhere.log")
    monkeypatch.setenv("AEGIS_LOG_FILE", target)
    assert config.log_file() == target
    assert not aegis_home.exists()
