"""Migration of the transaction and message tables to the partitioned layout."""

from __future__ import annotations

import json
import logging
from contextlib import closing
from dataclasses import fields
from typing import Any, Sequence

from chainindexer.database import Migrator
from chainindexer.database_config import DatabaseConfig
from chainindexer.migrate_utils import TransactionRow, message_parser

_log = logging.getLogger(__name__)

_ROW_FIELDS = {f.name for f in fields(TransactionRow)}
_JSON_FIELDS = {"messages", "signer_infos", "fee", "logs"}

_INSERT_TRANSACTIONS = """INSERT INTO transaction 
(hash, height, success, messages, memo, signatures, signer_infos, fee, gas_wanted, gas_used, raw_log, logs, partition_id) VALUES 
"""

_INSERT_MESSAGES = """INSERT INTO message 
(transaction_hash, index, type, value, involved_accounts_addresses, height, partition_id) VALUES """

_RENAME_TRANSACTIONS = """ALTER TABLE IF EXISTS transaction RENAME TO transaction_old;
ALTER INDEX IF EXISTS transaction_pkey RENAME TO transaction_old_pkey;
ALTER INDEX IF EXISTS transaction_hash_index RENAME TO transaction_old_hash_index;
ALTER INDEX IF EXISTS transaction_height_index RENAME TO transaction_old_height_index;
ALTER TABLE IF EXISTS transaction_old RENAME CONSTRAINT transaction_height_fkey TO transaction_old_height_fkey;"""

_RENAME_MESSAGES = """ALTER TABLE IF EXISTS message RENAME TO message_old;;
ALTER INDEX IF EXISTS message_involved_accounts_addresses RENAME TO message_old_involved_accounts_addresses;
ALTER INDEX IF EXISTS message_transaction_hash_index RENAME TO message_old_transaction_hash_index;
ALTER INDEX IF EXISTS message_type_index RENAME TO message_old_type_index;
ALTER TABLE IF EXISTS message_old RENAME CONSTRAINT message_transaction_hash_fkey TO message_old_transaction_hash_fkey;"""

_DROP_MESSAGES_FUNCTION = "DROP FUNCTION IF EXISTS messages_by_address(text[],text[],bigint,bigint);"

_CREATE_MESSAGES_FUNCTION = """
CREATE FUNCTION messages_by_address(
    addresses TEXT[],
    types TEXT[],
    "limit" BIGINT = 100,
    "offset" BIGINT = 0)
    RETURNS SETOF message AS
$$
SELECT * FROM message
WHERE (cardinality(types) = 0 OR type = ANY (types))
  AND addresses && involved_accounts_addresses
ORDER BY height DESC LIMIT "limit" OFFSET "offset"
$$ LANGUAGE sql STABLE;
"""


def _create_transactions_table(user: str) -> str:
    return f"""
CREATE TABLE transaction
(
	hash         TEXT    NOT NULL,
	height       BIGINT  NOT NULL REFERENCES block (height),
	success      BOOLEAN NOT NULL,

	/* Body */
	messages     JSONB   NOT NULL DEFAULT '[]'::JSONB,
	memo         TEXT,
	signatures   TEXT[]  NOT NULL,

	/* AuthInfo */
	signer_infos JSONB   NOT NULL DEFAULT '[]'::JSONB,
	fee          JSONB   NOT NULL DEFAULT '{{}}'::JSONB,

	/* Tx response */
	gas_wanted   BIGINT           DEFAULT 0,
	gas_used     BIGINT           DEFAULT 0,
	raw_log      TEXT,
	logs         JSONB,

	/* PSQL partition */
	partition_id BIGINT NOT NULL,
	
	CONSTRAINT unique_tx UNIQUE (hash, partition_id)
) PARTITION BY LIST(partition_id);
CREATE INDEX transaction_hash_index ON transaction (hash);
CREATE INDEX transaction_height_index ON transaction (height);
CREATE INDEX transaction_partition_id_index ON transaction (partition_id);
GRANT ALL PRIVILEGES ON transaction TO "{user}";
"""


def _create_messages_table(user: str) -> str:
    return f"""
CREATE TABLE message
(
	transaction_hash            TEXT   NOT NULL,
	index                       BIGINT NOT NULL,
	type                        TEXT   NOT NULL,
	value                       JSONB  NOT NULL,
	involved_accounts_addresses TEXT[] NOT NULL,
	height                      BIGINT NOT NULL,

	/* PSQL partition */
	partition_id                BIGINT NOT NULL,
	
	FOREIGN KEY (transaction_hash, partition_id) REFERENCES transaction (hash, partition_id),  
	CONSTRAINT unique_message_per_tx UNIQUE (transaction_hash, index, partition_id)
) PARTITION BY LIST(partition_id);
CREATE INDEX message_transaction_hash_index ON message (transaction_hash);
CREATE INDEX message_type_index ON message (type);
CREATE INDEX message_involved_accounts_index ON message USING GIN(involved_accounts_addresses);
GRANT ALL PRIVILEGES ON message TO "{user}";
"""


def _partition_id(height: int, partition_size: int) -> int:
    quotient = abs(height) // partition_size
    return quotient if height >= 0 else -quotient


def _pg_array(values: Sequence[Any]) -> str:
    quoted = (
        '"' + str(v).replace("\\", "\\\\").replace('"', '\\"') + '"' for v in values
    )
    return "{" + ",".join(quoted) + "}"


def _text(name: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    if name in _JSON_FIELDS and isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    if isinstance(value, (list, tuple)):
        return _pg_array(value)
    return str(value)


def _row_from_record(columns: Sequence[str], record: Sequence[Any]) -> TransactionRow:
    values: dict[str, Any] = {}
    for column, value in zip(columns, record):
        if column not in _ROW_FIELDS:
            raise ValueError(f"missing destination name {column}")
        values[column] = int(value) if column == "height" else _text(column, value)
    return TransactionRow(**values)


class LegacyMigrator(Migrator):
    """Moves transactions and messages into partitioned tables."""

    def __init__(self, connection: Any, config: DatabaseConfig) -> None:
        self.connection = connection
        self.config = config

    def _execute(self, sql: str, params: Sequence[Any] | None = None, fetch: bool = False):
        try:
            with closing(self.connection.cursor()) as cursor:
                if params is None:
                    cursor.execute(sql)
                else:
                    cursor.execute(sql, tuple(params))
                if fetch:
                    columns = [d[0] for d in cursor.description or ()]
                    result = (columns, cursor.fetchall())
                else:
                    result = None
        except Exception:
            rollback = getattr(self.connection, "rollback", None)
            if rollback is not None:
                rollback()
            raise
        self.connection.commit()
        return result

    def migrate(self) -> None:
        batch_size = self.config.partition_batch_size
        if batch_size == 0:
            _log.info("partition batch size is set to 0, skipping migration")
            return

        partition_size = self.config.partition_size
        if partition_size == 0:
            _log.info("partition size is set to 0, skipping migration")
            return

        _log.info("preparing the tables for the migration")
        self.prepare_migration()

        _log.info("migrating transactions")
        offset = 0
        while True:
            try:
                rows = self._get_old_transactions(batch_size, offset)
            except Exception as exc:
                raise RuntimeError(f"error while getting old transaction rows: {exc}") from exc
            if not rows:
                break

            _log.debug("migrating transactions start_row=%d end_row=%d", offset, offset + batch_size)
            try:
                self._migrate_transactions(rows, partition_size)
            except Exception as exc:
                raise RuntimeError(f"error while inserting data: {exc}") from exc
            offset += batch_size

    def _get_old_transactions(self, batch_size: int, offset: int) -> list[TransactionRow]:
        stmt = f"SELECT * FROM transaction_old ORDER BY height LIMIT {batch_size} OFFSET {offset}"
        columns, records = self._execute(stmt, fetch=True)
        return [_row_from_record(columns, record) for record in records]

    def _create_partition_table(self, table: str, partition_id: int) -> None:
        partition_table = f"{table}_{partition_id}"
        self._execute(
            f"CREATE TABLE IF NOT EXISTS {partition_table} PARTITION OF {table} FOR VALUES IN ({partition_id})"
        )

    def _migrate_transactions(self, rows: list[TransactionRow], partition_size: int) -> None:
        placeholders: list[str] = []
        params: list[Any] = []
        for tx in rows:
            partition_id = _partition_id(tx.height, partition_size)
            try:
                self._create_partition_table("transaction", partition_id)
            except Exception as exc:
                raise RuntimeError(f"error while creating transaction partition table: {exc}") from exc

            _log.debug("processing transactions tx_height=%d", tx.height)
            params.extend(
                (tx.hash, tx.height, tx.success, tx.messages, tx.memo, tx.signatures,
                 tx.signer_infos, tx.fee, tx.gas_wanted, tx.gas_used, tx.raw_log, tx.logs, partition_id)
            )
            placeholders.append("(" + ", ".join(["%s"] * 13) + ")")

        stmt = _INSERT_TRANSACTIONS + ",".join(placeholders) + " ON CONFLICT DO NOTHING"
        try:
            self._execute(stmt, params)
        except Exception as exc:
            raise RuntimeError(f"error while inserting transaction: {exc}") from exc

        for tx in rows:
            _log.debug("processing transaction messages tx_height=%d", tx.height)
            try:
                self._insert_transaction_messages(tx, partition_size)
            except Exception as exc:
                raise RuntimeError(f"error while inserting messages: {exc}") from exc

    def _insert_transaction_messages(self, tx: TransactionRow, partition_size: int) -> None:
        partition_id = _partition_id(tx.height, partition_size)
        try:
            self._create_partition_table("message", partition_id)
        except Exception as exc:
            raise RuntimeError(f"error while creating message partition table: {exc}") from exc

        try:
            msgs = json.loads(tx.messages)
        except ValueError as exc:
            raise ValueError(f"error while unmarshaling messages: {exc}") from exc
        if msgs is not None and (not isinstance(msgs, list) or not all(isinstance(m, dict) for m in msgs)):
            raise ValueError("error while unmarshaling messages: expected a list of objects")
        if not msgs:
            raise ValueError(f"no messages to insert for transaction {tx.hash}")

        placeholders: list[str] = []
        params: list[Any] = []
        for index, msg in enumerate(msgs):
            msg_type = msg.get("@type")
            if not isinstance(msg_type, str):
                raise TypeError(f"message {index} has no string @type")
            involved = message_parser(msg)
            del msg["@type"]
            value = json.dumps(msg, sort_keys=True, separators=(",", ":"))
            params.extend((tx.hash, index, msg_type[1:], value, involved, tx.height, partition_id))
            placeholders.append("(" + ", ".join(["%s"] * 7) + ")")

        stmt = _INSERT_MESSAGES + ",".join(placeholders) + " ON CONFLICT DO NOTHING"
        self._execute(stmt, params)

    def prepare_migration(self) -> None:
        """Rename the old tables and create the partitioned ones."""
        user = self.config.user()
        steps = (
            ("error while altering transaction table", [_RENAME_TRANSACTIONS]),
            ("error while creating transaction table", [_create_transactions_table(user)]),
            ("error while altering message table", [_RENAME_MESSAGES]),
            ("error while creating message table", [_create_messages_table(user)]),
            (
                "error while migrating the messages_by_address function",
                [_DROP_MESSAGES_FUNCTION, _CREATE_MESSAGES_FUNCTION],
            ),
        )
        for description, statements in steps:
            try:
                for stmt in statements:
                    self._execute(stmt)
            except Exception as exc:
                raise RuntimeError(f"{description}: {exc}") from exc