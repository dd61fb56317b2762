import pytest

from chainindexer.logging_config import LoggingConfig, default_logging_config


def test_default_values():
    cfg = default_logging_config()
    assert cfg.level == "debug"
    assert cfg.log_format == "text"


def test_to_dict_keys():
    assert default_logging_config().to_dict() == {"level": "debug", "format": "text"}


def test_round_trip():
    cfg = LoggingConfig(level="info", log_format="json")
    assert LoggingConfig.from_dict(cfg.to_dict()) == cfg


def test_missing_keys_become_empty():
    cfg = LoggingConfig.from_dict({})
    assert cfg.level == ""
    assert cfg.log_format == ""
    assert LoggingConfig.from_dict(None) == cfg


def test_non_string_rejected():
    with pytest.raises(TypeError):
        LoggingConfig.from_dict({"level": 3})