"""PostgreSQL implementation of the indexer database."""

from __future__ import annotations

import base64
import dataclasses
import json
from contextlib import closing
from typing import Any, Callable, Sequence

from chainindexer.database import (
    Block,
    CommitSig,
    Database,
    DatabaseContext,
    Message,
    PruningDatabase,
    Transaction,
    Validator,
)
from chainindexer.log import DefaultLogger

_SAVE_BLOCK = """
INSERT INTO block (height, hash, num_txs, total_gas, proposer_address, timestamp)
VALUES (%s, %s, %s, %s, %s, %s) ON CONFLICT DO NOTHING"""

_SAVE_TX = """
INSERT INTO transaction 
(hash, height, success, messages, memo, signatures, signer_infos, fee, gas_wanted, gas_used, raw_log, logs, partition_id) 
VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) 
ON CONFLICT (hash, partition_id) DO UPDATE 
	SET height = excluded.height, 
		success = excluded.success, 
		messages = excluded.messages,
		memo = excluded.memo, 
		signatures = excluded.signatures, 
		signer_infos = excluded.signer_infos,
		fee = excluded.fee, 
		gas_wanted = excluded.gas_wanted, 
		gas_used = excluded.gas_used,
		raw_log = excluded.raw_log, 
		logs = excluded.logs"""

_SAVE_MESSAGE = """
INSERT INTO message(transaction_hash, index, type, value, involved_accounts_addresses, height, partition_id) 
VALUES (%s, %s, %s, %s, %s, %s, %s) 
ON CONFLICT (transaction_hash, index, partition_id) DO UPDATE 
	SET height = excluded.height, 
		type = excluded.type,
		value = excluded.value,
		involved_accounts_addresses = excluded.involved_accounts_addresses"""

_PRUNE_MESSAGES = """
DELETE FROM message 
USING transaction 
WHERE message.transaction_hash = transaction.hash AND transaction.height = %s
"""


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def _to_json(value: Any) -> str:
    return json.dumps(value, default=_json_default, separators=(",", ":"))


def _partition_id(height: int, partition_size: int) -> int:
    quotient = abs(height) // partition_size
    return quotient if height >= 0 else -quotient


class PostgresDatabase(Database, PruningDatabase):
    """Stores chain data through a DB-API connection to PostgreSQL."""

    def __init__(
        self,
        connection: Any,
        logger: Any = None,
        partition_size: int = 0,
        max_open_connections: int = 0,
        max_idle_connections: int = 0,
    ) -> None:
        self.connection = connection
        self.logger = logger if logger is not None else DefaultLogger()
        self.partition_size = partition_size
        self.max_open_connections = max_open_connections
        self.max_idle_connections = max_idle_connections

    def _run(self, sql: str, params: Sequence[Any] = (), fetch: str | None = None) -> Any:
        try:
            with closing(self.connection.cursor()) as cursor:
                cursor.execute(sql, tuple(params))
                if fetch == "one":
                    result = cursor.fetchone()
                elif fetch == "all":
                    result = cursor.fetchall()
                else:
                    result = None
        except Exception:
            rollback = getattr(self.connection, "rollback", None)
            if rollback is not None:
                rollback()
            raise
        self.connection.commit()
        return result

    def create_partition_if_not_exists(self, table: str, partition_id: int) -> None:
        partition_table = f"{table}_{partition_id}"
        self._run(
            f"CREATE TABLE IF NOT EXISTS {partition_table} PARTITION OF {table} "
            f"FOR VALUES IN ({partition_id})"
        )

    def has_block(self, height: int) -> bool:
        row = self._run("SELECT EXISTS(SELECT 1 FROM block WHERE height = %s);", (height,), "one")
        return bool(row[0])

    def get_last_block_height(self) -> int:
        try:
            row = self._run("SELECT height FROM block ORDER BY height DESC LIMIT 1;", (), "one")
        except Exception as exc:
            raise RuntimeError(f"error while getting last block height, error: {exc}") from exc
        if row is None:
            return 0
        return int(row[0])

    def get_missing_heights(self, start_height: int, end_height: int) -> list[int]:
        stmt = "SELECT generate_series(%s::int,%s::int) EXCEPT SELECT height FROM block ORDER BY 1;"
        try:
            rows = self._run(stmt, (start_height, end_height), "all")
        except Exception:
            return []
        return [int(row[0]) for row in rows or []]

    def save_block(self, block: Block) -> None:
        proposer = block.proposer_address or None
        self._run(
            _SAVE_BLOCK,
            (block.height, block.hash, block.tx_num, block.total_gas, proposer, block.timestamp),
        )

    def get_total_blocks(self) -> int:
        try:
            row = self._run("SELECT count(*) FROM block;", (), "one")
        except Exception:
            return 0
        return int(row[0]) if row else 0

    def save_tx(self, tx: Transaction) -> None:
        partition_id = 0
        if self.partition_size > 0:
            partition_id = _partition_id(tx.height, self.partition_size)
            self.create_partition_if_not_exists("transaction", partition_id)
        self._save_tx_inside_partition(tx, partition_id)

    def _save_tx_inside_partition(self, tx: Transaction, partition_id: int) -> None:
        signatures = [base64.b64encode(sig).decode("ascii") for sig in tx.signatures]
        messages = "[" + ",".join(msg.value for msg in tx.messages) + "]"
        try:
            fee = _to_json(tx.fee)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"failed to JSON encode tx fee: {exc}") from exc
        signer_infos = "[" + ",".join(_to_json(info) for info in tx.signer_infos) + "]"
        logs = _to_json(tx.logs)
        self._run(
            _SAVE_TX,
            (
                tx.tx_hash, tx.height, tx.success,
                messages, tx.memo, signatures,
                signer_infos, fee,
                tx.gas_wanted, tx.gas_used, tx.raw_log, logs,
                partition_id,
            ),
        )

    def has_validator(self, address: str) -> bool:
        row = self._run(
            "SELECT EXISTS(SELECT 1 FROM validator WHERE consensus_address = %s);", (address,), "one"
        )
        return bool(row[0])

    def save_validators(self, validators: list[Validator]) -> None:
        if not validators:
            return
        values = ",".join("(%s, %s)" for _ in validators)
        stmt = f"INSERT INTO validator (consensus_address, consensus_pubkey) VALUES {values} ON CONFLICT DO NOTHING"
        params = [item for val in validators for item in (val.cons_addr, val.cons_pub_key)]
        self._run(stmt, params)

    def save_commit_signatures(self, signatures: list[CommitSig]) -> None:
        if not signatures:
            return
        values = ",".join("(%s, %s, %s, %s, %s)" for _ in signatures)
        stmt = (
            "INSERT INTO pre_commit (validator_address, height, timestamp, voting_power, proposer_priority) "
            f"VALUES {values} ON CONFLICT (validator_address, timestamp) DO NOTHING"
        )
        params = [
            item
            for sig in signatures
            for item in (sig.validator_address, sig.height, sig.timestamp, sig.voting_power, sig.proposer_priority)
        ]
        self._run(stmt, params)

    def save_message(self, height: int, tx_hash: str, msg: Message, addresses: list[str]) -> None:
        partition_id = 0
        if self.partition_size > 0:
            partition_id = _partition_id(height, self.partition_size)
            self.create_partition_if_not_exists("message", partition_id)
        self._run(
            _SAVE_MESSAGE,
            (tx_hash, msg.index, msg.type, msg.value, list(addresses), height, partition_id),
        )

    def close(self) -> None:
        try:
            self.connection.close()
        except Exception as exc:
            self.logger.error("error while closing connection", err=exc)

    def get_last_pruned(self) -> int:
        row = self._run("SELECT coalesce(MAX(last_pruned_height),0) FROM pruning LIMIT 1;", (), "one")
        return int(row[0]) if row else 0

    def store_last_pruned(self, height: int) -> None:
        self._run("DELETE FROM pruning")
        self._run("INSERT INTO pruning (last_pruned_height) VALUES (%s)", (height,))

    def prune(self, height: int) -> None:
        self._run("DELETE FROM pre_commit WHERE height = %s", (height,))
        self._run(_PRUNE_MESSAGES, (height,))


def build_database(context: DatabaseContext, connect: Callable[[str], Any]) -> PostgresDatabase:
    """Open a connection with the configured settings and wrap it."""
    cfg = context.cfg
    dsn = cfg.url
    if cfg.ssl_mode_enable == "true":
        dsn += (
            f" sslmode=require sslrootcert={cfg.ssl_root_cert} "
            f"sslcert={cfg.ssl_cert} sslkey={cfg.ssl_key}"
        )
    connection = connect(dsn)
    return PostgresDatabase(
        connection,
        context.logger,
        partition_size=cfg.partition_size,
        max_open_connections=cfg.max_open_connections,
        max_idle_connections=cfg.max_idle_connections,
    )