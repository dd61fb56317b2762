"""Records stored by the indexer and the database interfaces that hold them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from chainindexer.database_config import DatabaseConfig
from chainindexer.log import DefaultLogger


@dataclass
class Block:
    height: int
    hash: str
    tx_num: int = 0
    total_gas: int = 0
    proposer_address: str = ""
    timestamp: datetime | None = None


@dataclass
class Validator:
    cons_addr: str
    cons_pub_key: str


@dataclass
class CommitSig:
    validator_address: str
    voting_power: int
    proposer_priority: int
    height: int
    timestamp: datetime | None = None


@dataclass
class Message:
    """A single transaction message with its JSON encoded value."""

    tx_hash: str
    index: int
    type: str
    value: str


@dataclass
class EventAttribute:
    key: str
    value: str


@dataclass
class Event:
    type: str
    attributes: list[EventAttribute] = field(default_factory=list)


@dataclass
class Transaction:
    tx_hash: str
    height: int
    success: bool = True
    messages: list[Message] = field(default_factory=list)
    memo: str = ""
    signatures: list[bytes] = field(default_factory=list)
    signer_infos: list[Any] = field(default_factory=list)
    fee: Any = None
    gas_wanted: int = 0
    gas_used: int = 0
    raw_log: str = ""
    logs: list[Any] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)


class Database(ABC):
    """Storage for blocks, transactions, validators and messages."""

    @abstractmethod
    def has_block(self, height: int) -> bool:
        """Tell whether the block at the given height is stored."""

    @abstractmethod
    def get_last_block_height(self) -> int:
        """Return the highest stored block height, 0 if none."""

    @abstractmethod
    def get_missing_heights(self, start_height: int, end_height: int) -> list[int]:
        """Return the heights in the inclusive range that are not stored."""

    @abstractmethod
    def save_block(self, block: Block) -> None:
        """Store a block."""

    @abstractmethod
    def get_total_blocks(self) -> int:
        """Return the number of stored blocks."""

    @abstractmethod
    def save_tx(self, tx: Transaction) -> None:
        """Store a transaction."""

    @abstractmethod
    def has_validator(self, address: str) -> bool:
        """Tell whether a validator with the consensus address is stored."""

    @abstractmethod
    def save_validators(self, validators: list[Validator]) -> None:
        """Store validators that are not yet stored."""

    @abstractmethod
    def save_commit_signatures(self, signatures: list[CommitSig]) -> None:
        """Store validator commit signatures."""

    @abstractmethod
    def save_message(self, height: int, tx_hash: str, msg: Message, addresses: list[str]) -> None:
        """Store a single message with its involved addresses."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""


class PruningDatabase(ABC):
    """A database that supports pruning old heights."""

    @abstractmethod
    def prune(self, height: int) -> None:
        """Remove the prunable data of the given height."""

    @abstractmethod
    def store_last_pruned(self, height: int) -> None:
        """Record the last pruned height."""

    @abstractmethod
    def get_last_pruned(self) -> int:
        """Return the last pruned height."""


class Migrator(ABC):
    """Migrates a database from one schema version to the next."""

    @abstractmethod
    def migrate(self) -> None:
        """Perform the migration."""


@dataclass
class DatabaseContext:
    """What a database builder needs to create a database."""

    cfg: DatabaseConfig
    logger: DefaultLogger | None = None