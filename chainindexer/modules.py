"""Module interfaces that indexer extensions implement."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Module(ABC):
    """A named unit of indexing behaviour."""

    @abstractmethod
    def name(self) -> str:
        """Return the module name."""


class Modules(list):
    """A list of modules searchable by name."""

    def find_by_name(self, name: str) -> Module | None:
        target = name.casefold()
        return next((module for module in self if module.name().casefold() == target), None)


class AdditionalOperationsModule(ABC):
    @abstractmethod
    def run_additional_operations(self) -> None:
        """Run once before block parsing starts."""


class AsyncOperationsModule(ABC):
    @abstractmethod
    def run_async_operations(self) -> None:
        """Run in the background until the process stops."""


class PeriodicOperationsModule(ABC):
    @abstractmethod
    def register_periodic_operations(self, scheduler: Any) -> None:
        """Register recurring tasks on the given scheduler."""


class FastSyncModule(ABC):
    @abstractmethod
    def download_state(self, height: int) -> None:
        """Fetch the module state at the given height."""


class GenesisModule(ABC):
    @abstractmethod
    def handle_genesis(self, doc: Any, app_state: dict) -> None:
        """Handle the genesis document and its decoded application state."""


class BlockModule(ABC):
    @abstractmethod
    def handle_block(self, block: Any, results: Any, txs: list, vals: Any) -> None:
        """Handle a single block."""


class TransactionModule(ABC):
    @abstractmethod
    def handle_tx(self, tx: Any) -> None:
        """Handle a single transaction."""


class MessageModule(ABC):
    @abstractmethod
    def handle_msg(self, index: int, msg: Any, tx: Any) -> None:
        """Handle a single message of a transaction."""


class AuthzMessageModule(ABC):
    @abstractmethod
    def handle_msg_exec(self, index: int, authz_msg_index: int, executed_msg: Any, tx: Any) -> None:
        """Handle a message executed through an authorization grant."""