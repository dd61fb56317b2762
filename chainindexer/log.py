"""Structured logger used across the indexer."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from chainindexer.metrics import ERROR_COUNT

LOG_KEY_MODULE = "module"
LOG_KEY_HEIGHT = "height"
LOG_KEY_TX_HASH = "tx_hash"
LOG_KEY_MSG_TYPE = "msg_type"

_TRACE = 5
_PANIC = logging.CRITICAL + 5
_DISABLED = logging.CRITICAL + 50

_LEVELS = {
    "trace": _TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": _PANIC,
    "disabled": _DISABLED,
    "": _DISABLED,
}

_NAMES = {
    _TRACE: ("trace", "TRC"),
    logging.DEBUG: ("debug", "DBG"),
    logging.INFO: ("info", "INF"),
    logging.WARNING: ("warn", "WRN"),
    logging.ERROR: ("error", "ERR"),
    logging.CRITICAL: ("fatal", "FTL"),
    _PANIC: ("panic", "PNC"),
}


def _timestamp(record: logging.LogRecord) -> str:
    moment = datetime.fromtimestamp(record.created, tz=timezone.utc).astimezone()
    return moment.isoformat(timespec="seconds")


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {"level": _NAMES.get(record.levelno, ("", ""))[0]}
        payload.update(getattr(record, "fields", None) or {})
        payload["time"] = _timestamp(record)
        payload["message"] = record.getMessage()
        return json.dumps(payload, default=str)


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        abbreviation = _NAMES.get(record.levelno, ("", "???"))[1]
        parts = [_timestamp(record), abbreviation, record.getMessage()]
        fields = getattr(record, "fields", None) or {}
        parts.extend(f"{key}={value}" for key, value in sorted(fields.items()))
        return " ".join(parts)


def get_log_fields(*args) -> dict[str, Any] | None:
    """Pair up alternating keys and values; an odd count gives None."""
    if len(args) % 2:
        return None
    keys, values = args[::2], args[1::2]
    for key in keys:
        if not isinstance(key, str):
            raise TypeError(f"log field key must be a string, got {type(key).__name__}")
    return dict(zip(keys, values))


class DefaultLogger:
    """Logger writing JSON or console lines to a stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._logger = logging.Logger("chainindexer")
        self._logger.propagate = False
        self._handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        self._handler.setLevel(_TRACE)
        self._handler.setFormatter(_JsonFormatter())
        self._logger.addHandler(self._handler)

    def set_log_level(self, level: str) -> None:
        try:
            numeric = _LEVELS[level.lower()]
        except KeyError:
            raise ValueError(f"Unknown Level String: '{level}', defaulting to NoLevel") from None
        self._handler.setLevel(numeric)

    def set_log_format(self, log_format: str) -> None:
        if log_format == "json":
            self._handler.setFormatter(_JsonFormatter())
        elif log_format == "text":
            self._handler.setFormatter(_ConsoleFormatter())
        else:
            raise ValueError(f"invalid logging format: {log_format}")

    def _log(self, level: int, msg: str, fields: dict[str, Any]) -> None:
        self._logger.log(level, msg, extra={"fields": fields})

    def info(self, msg: str, **kwargs) -> None:
        self._log(logging.INFO, msg, kwargs)

    def debug(self, msg: str, **kwargs) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def error(self, msg: str, **kwargs) -> None:
        ERROR_COUNT.inc()
        self._log(logging.ERROR, msg, kwargs)

    def genesis_error(self, module, err) -> None:
        self.error("error while handling genesis", err=err, **{LOG_KEY_MODULE: module.name()})

    def block_error(self, module, height, err) -> None:
        self.error(
            "error while handling block",
            err=err,
            **{LOG_KEY_MODULE: module.name(), LOG_KEY_HEIGHT: height},
        )

    def events_error(self, module, height, err) -> None:
        self.error(
            "error while handling block events",
            err=err,
            **{LOG_KEY_MODULE: module.name(), LOG_KEY_HEIGHT: height},
        )

    def tx_error(self, module, tx, err) -> None:
        self.error(
            "error while handling transaction",
            err=err,
            **{LOG_KEY_MODULE: module.name(), LOG_KEY_HEIGHT: tx.height, LOG_KEY_TX_HASH: tx.tx_hash},
        )

    def msg_error(self, module, tx, msg, err) -> None:
        self.error(
            "error while handling message",
            err=err,
            **{
                LOG_KEY_MODULE: module.name(),
                LOG_KEY_HEIGHT: tx.height,
                LOG_KEY_TX_HASH: tx.tx_hash,
                LOG_KEY_MSG_TYPE: msg.type,
            },
        )