import importlib
from pathlib import Path

import pytest

from errors import InvalidConfigurationError

OPTION_ENV = ["COMPOSITE_ID_FIELD", "PREFIX_FIELDS", "POSTFIX_FIELD", "OVERWRITE_DUPES", "ENABLED"]


def reload_config_module():
    import sys
    sys.modules.pop("config", None)
    return importlib.import_module("config")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in [*OPTION_ENV, "CHROMA_PATH", "SCHEMA_PATH", "PROCESSOR_CONFIG_PATH", "LOG_LEVEL"]:
        monkeypatch.delenv(name, raising=False)


def test_config_defaults():
    cfg_mod = reload_config_module()
    cfg = cfg_mod.Config(_env_file=None)

    project_root = Path(__file__).parent.parent
    assert cfg.CHROMA_PATH == str((project_root / "chroma_data").resolve())
    assert cfg.SCHEMA_PATH == str((project_root / "schema.yaml").resolve())
    assert cfg.PROCESSOR_CONFIG_PATH is None
    assert cfg.COLLECTION_NAME == "documents"
    assert cfg.LOG_LEVEL == "INFO"
    assert isinstance(cfg.chroma_path, Path)
    assert cfg.processor_options() == {}


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("CHROMA_PATH", "/tmp/chroma")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("PREFIX_FIELDS", "region,entityType")
    monkeypatch.setenv("OVERWRITE_DUPES", "false")

    cfg_mod = reload_config_module()
    cfg = cfg_mod.Config(_env_file=None)

    assert str(Path("/tmp/chroma").resolve()) == cfg.CHROMA_PATH
    assert cfg.LOG_LEVEL == "DEBUG"
    assert cfg.processor_options() == {"prefixFields": "region,entityType", "overwriteDupes": False}


def test_invalid_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(Exception):  # noqa: B017
        reload_config_module()


def test_options_file_with_env_overrides(monkeypatch, options_path: Path):
    monkeypatch.setenv("POSTFIX_FIELD", "uid")
    cfg = reload_config_module().Config(_env_file=None)

    options = cfg.processor_options(options_path)
    assert options["compositeIdField"] == "compositeId"
    assert options["prefixFields"] == "region, entityType"
    assert options["overwriteDupes"] is True
    assert options["postfixField"] == "uid"


def test_options_file_from_setting(monkeypatch, options_path: Path):
    monkeypatch.setenv("PROCESSOR_CONFIG_PATH", str(options_path))
    cfg = reload_config_module().Config(_env_file=None)
    assert cfg.processor_options()["postfixField"] == "id"


def test_options_file_must_be_mapping(tmp_path: Path):
    bad = tmp_path / "options.yaml"
    bad.write_text("- a\n- b\n", encoding="utf-8")
    cfg = reload_config_module().Config(_env_file=None)
    with pytest.raises(InvalidConfigurationError):
        cfg.processor_options(bad)


def test_options_file_missing(tmp_path: Path):
    cfg = reload_config_module().Config(_env_file=None)
    with pytest.raises(InvalidConfigurationError):
        cfg.processor_options(tmp_path / "missing.yaml")


def test_options_file_not_utf8(tmp_path: Path):
    bad = tmp_path / "options.yaml"
    bad.write_bytes(b"postfixField: \xff\xfe\n")
    cfg = reload_config_module().Config(_env_file=None)
    with pytest.raises(InvalidConfigurationError, match="Cannot read processor options"):
        cfg.processor_options(bad)


def test_empty_env_values_are_ignored(monkeypatch):
    monkeypatch.setenv("ENABLED", "")
    monkeypatch.setenv("OVERWRITE_DUPES", "")
    monkeypatch.setenv("POSTFIX_FIELD", "")

    cfg_mod = reload_config_module()

    assert cfg_mod.config.ENABLED is None
    cfg = cfg_mod.Config(_env_file=None)
    assert cfg.ENABLED is None
    assert cfg.OVERWRITE_DUPES is None
    assert cfg.processor_options() == {}
