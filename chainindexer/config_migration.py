"""Migration of the configuration file from the v3 layout to the v4 layout."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from chainindexer import pruning, telemetry
from chainindexer.database_config import DatabaseConfig
from chainindexer.logging_config import LoggingConfig

CONFIG_FILE_NAME = "config.yaml"


@dataclass
class V3DatabaseConfig:
    """Database settings as written by the v3 configuration layout."""

    name: str = ""
    host: str = ""
    port: int = 0
    user: str = ""
    password: str = ""
    ssl_mode: str = ""
    schema: str = ""
    max_open_connections: int = 0
    max_idle_connections: int = 0
    partition_size: int = 0
    partition_batch_size: int = 0


def _config_path(home: str | os.PathLike) -> Path:
    return Path(home) / CONFIG_FILE_NAME


def _as_int(key: str, value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"database {key} must be an integer, got {value!r}")
    return value


def _as_str(key: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"database {key} must be a string, got {value!r}")
    return value


def _database_from_dict(data: Mapping[str, Any]) -> V3DatabaseConfig:
    return V3DatabaseConfig(
        name=_as_str("name", data.get("name")),
        host=_as_str("host", data.get("host")),
        port=_as_int("port", data.get("port")),
        user=_as_str("user", data.get("user")),
        password=_as_str("password", data.get("password")),
        ssl_mode=_as_str("ssl_mode", data.get("ssl_mode")),
        schema=_as_str("schema", data.get("schema")),
        max_open_connections=_as_int("max_open_connections", data.get("max_open_connections")),
        max_idle_connections=_as_int("max_idle_connections", data.get("max_idle_connections")),
        partition_size=_as_int("partition_size", data.get("partition_size")),
        partition_batch_size=_as_int("partition_batch", data.get("partition_batch")),
    )


def _section(document: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    value = document.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValueError(f"{key} configuration must be a mapping")
    return dict(value)


def read_v3_config(home: str | os.PathLike) -> dict[str, Any]:
    """Read the v3 configuration file found inside the home directory."""
    path = _config_path(home)
    if not path.exists():
        raise FileNotFoundError("config file does not exist")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise OSError(f"error while reading config files: {exc}") from exc

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(str(exc)) from exc
    if document is None:
        document = {}
    if not isinstance(document, Mapping):
        raise ValueError("configuration document must be a mapping")

    return {
        "chain": _section(document, "chain") or {},
        "node": _section(document, "node") or {},
        "parsing": _section(document, "parsing") or {},
        "database": _database_from_dict(_section(document, "database") or {}),
        "logging": LoggingConfig.from_dict(_section(document, "logging")),
        "telemetry": telemetry.parse_config(text),
        "pruning": pruning.parse_config(text),
        "pricefeed": _section(document, "pricefeed"),
    }


def migrate_config(v3_config: Mapping[str, Any]) -> dict[str, Any]:
    """Turn a v3 configuration into the v4 document, ready to be written."""
    db: V3DatabaseConfig = v3_config.get("database") or V3DatabaseConfig()
    ssl_mode = db.ssl_mode or "disable"
    schema = db.schema or "public"
    url = (
        f"postgresql://{db.user}:{db.password}@{db.host}:{db.port}/{db.name}"
        f"?sslmode={ssl_mode}&search_path={schema}"
    )
    database = DatabaseConfig(
        url=url,
        max_open_connections=db.max_open_connections,
        max_idle_connections=db.max_idle_connections,
        partition_size=db.partition_size,
        partition_batch_size=db.partition_batch_size,
    )
    logging_cfg = v3_config.get("logging") or LoggingConfig()

    result: dict[str, Any] = {
        "chain": dict(v3_config.get("chain") or {}),
        "node": dict(v3_config.get("node") or {}),
        "parsing": dict(v3_config.get("parsing") or {}),
        "database": database.to_dict(),
        "logging": logging_cfg.to_dict(),
    }
    telemetry_cfg = v3_config.get("telemetry")
    if telemetry_cfg is not None:
        result["telemetry"] = dataclasses.asdict(telemetry_cfg)
    pruning_cfg = v3_config.get("pruning")
    if pruning_cfg is not None:
        result["pruning"] = dataclasses.asdict(pruning_cfg)
    pricefeed_cfg = v3_config.get("pricefeed")
    if pricefeed_cfg is not None:
        result["pricefeed"] = dict(pricefeed_cfg)
    return result


def run_migration(home: str | os.PathLike) -> Path:
    """Rewrite the configuration file inside home from the v3 to the v4 layout."""
    try:
        v3_config = read_v3_config(home)
    except (OSError, ValueError) as exc:
        raise RuntimeError(
            f"error while migrating config: error while reading v3 config: {exc}"
        ) from exc

    try:
        text = yaml.safe_dump(migrate_config(v3_config), sort_keys=False)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"error while serializing config: {exc}") from exc

    path = _config_path(home)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
    except OSError as exc:
        raise RuntimeError(f"error while writing v4 config: {exc}") from exc
    return path