import json

import pytest
import yaml

from chainindexer import cli
from chainindexer.cli import available_versions, main, run_migrate, version_info
from chainindexer.database_config import DatabaseConfig

password = "password"


def _write_v3(home):
    document = {
        "chain": {"bech32_prefix": "cosmos"},
        "database": {
            "name": "indexer",
            "host": "localhost",
            "port": 5432,
            "user": "user",
            "password": password,
        },
        "logging": {"level": "info", "format": "json"},
    }
    (home / "config.yaml").write_text(yaml.safe_dump(document), encoding="utf-8")


def test_version_info_json():
    info = json.loads(version_info("json"))
    assert set(info) == {"version", "commit", "python"}
    assert info["version"] == cli.VERSION
    assert info["commit"] == cli.COMMIT


def test_version_info_text_matches_json():
    assert yaml.safe_load(version_info("text")) == json.loads(version_info("json"))


def test_available_versions():
    assert available_versions() == ["v4"]


def test_run_migrate_unknown_version(tmp_path):
    with pytest.raises(ValueError, match="migration for version v9 not found"):
        run_migrate("v9", str(tmp_path))


def test_run_migrate_v4(tmp_path):
    _write_v3(tmp_path)
    run_migrate("v4", str(tmp_path))
    written = yaml.safe_load((tmp_path / "config.yaml").read_text(encoding="utf-8"))
    assert DatabaseConfig.from_dict(written["database"]).user() == "user"


def test_main_migrate_without_version_lists_versions(tmp_path, capsys):
    assert main(["--home", str(tmp_path), "migrate"]) == 0
    out = capsys.readouterr().out
    assert "Please specify a version to migrate to. Available versions:" in out
    assert "- v4" in out


def test_main_migrate_unknown_version_fails(tmp_path, capsys):
    assert main(["--home", str(tmp_path), "migrate", "v9"]) == 1
    assert "migration for version v9 not found" in capsys.readouterr().err


def test_main_migrate_missing_config_fails(tmp_path, capsys):
    assert main(["migrate", "v4", "--home", str(tmp_path)]) == 1
    assert "config file does not exist" in capsys.readouterr().err


def test_main_migrate_home_after_subcommand(tmp_path):
    _write_v3(tmp_path)
    assert main(["migrate", "v4", "--home", str(tmp_path)]) == 0
    written = yaml.safe_load((tmp_path / "config.yaml").read_text(encoding="utf-8"))
    db = DatabaseConfig.from_dict(written["database"])
    assert db.schema() == "public"
    assert db.ssl_mode() == "disable"


def test_main_version_json(capsys):
    assert main(["version", "--format", "json"]) == 0
    out = capsys.readouterr().out
    assert json.loads(out) == json.loads(version_info("json"))


def test_main_version_default_is_yaml(capsys):
    assert main(["version"]) == 0
    assert yaml.safe_load(capsys.readouterr().out) == yaml.safe_load(version_info("text"))