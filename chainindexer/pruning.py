"""Periodic pruning of old heights from the database."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml

from chainindexer.database import PruningDatabase
from chainindexer.modules import AdditionalOperationsModule, BlockModule, Module


@dataclass
class PruningConfig:
    keep_recent: int = 0
    keep_every: int = 0
    interval: int = 0


def _as_int(key: str, value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"pruning {key} must be an integer, got {value!r}")
    return value


def parse_config(data: bytes | str) -> PruningConfig | None:
    """Read the pruning section of a configuration document; None if it is absent."""
    document = yaml.safe_load(data)
    if document is None:
        return None
    if not isinstance(document, dict):
        raise ValueError("configuration document must be a mapping")
    section = document.get("pruning")
    if section is None:
        return None
    if not isinstance(section, dict):
        raise ValueError("pruning configuration must be a mapping")
    return PruningConfig(
        keep_recent=_as_int("keep_recent", section.get("keep_recent")),
        keep_every=_as_int("keep_every", section.get("keep_every")),
        interval=_as_int("interval", section.get("interval")),
    )


def run_additional_operations(cfg: PruningConfig | None) -> None:
    if cfg is None:
        raise ValueError("pruning config is not set but module is enabled")


class PruningModule(Module, BlockModule, AdditionalOperationsModule):
    """Cleans old heights from the database at regular intervals."""

    def __init__(self, cfg: PruningConfig | None, db: Any, logger: Any) -> None:
        self.cfg = cfg
        self._db = db
        self._logger = logger

    @classmethod
    def from_config_bytes(cls, data: bytes | str, db: Any, logger: Any) -> "PruningModule":
        return cls(parse_config(data), db, logger)

    def name(self) -> str:
        return "pruning"

    def run_additional_operations(self) -> None:
        run_additional_operations(self.cfg)

    def handle_block(self, block: Any, results: Any, txs: Any, vals: Any) -> None:
        height = block.height
        if height % self.cfg.interval != 0:
            return
        if not isinstance(self._db, PruningDatabase):
            raise TypeError("pruning is enabled, but your database does not implement PruningDb")

        last_pruned = self._db.get_last_pruned()
        end = height - self.cfg.keep_recent
        for current in range(last_pruned, end):
            if current % self.cfg.keep_recent == 0:
                continue
            self._logger.debug("pruning", module="pruning", height=current)
            try:
                self._db.prune(current)
            except Exception as exc:
                raise RuntimeError(f"error while pruning height {current}: {exc}") from exc
        self._db.store_last_pruned(max(last_pruned, end))