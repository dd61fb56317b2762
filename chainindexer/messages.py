"""Storage of transaction messages and extraction of the addresses they involve."""

from __future__ import annotations

from typing import Callable, Iterable

from chainindexer.bech32 import Bech32Prefixes, address_from_bech32, bech32_encode, convert_bits
from chainindexer.database import Database, Message, Transaction
from chainindexer.modules import MessageModule, Module

MessageAddressesParser = Callable[[Transaction], list[str]]


def trim_last_char(s: str) -> str:
    """Drop the last character of the string."""
    return s[:-1]


def remove_duplicates(values: Iterable[str]) -> list[str]:
    """Keep the first occurrence of each value, in order."""
    return list(dict.fromkeys(values))


def _reencode(value: str, prefix: str) -> str | None:
    try:
        raw = address_from_bech32(value, prefix)
    except ValueError:
        return None
    return bech32_encode(prefix, convert_bits(raw, 8, 5, True))


def parse_addresses_from_events(tx: Transaction, prefixes: Bech32Prefixes) -> list[str]:
    """Collect validator and account addresses found in the transaction's event attributes."""
    addresses: list[str] = []
    for event in tx.events:
        for attribute in event.attributes:
            validator = _reencode(attribute.value, prefixes.validator_addr)
            if validator is not None:
                addresses.append(validator)
            account = _reencode(attribute.value, prefixes.account_addr)
            if account is not None:
                addresses.append(account)
    return remove_duplicates(addresses)


def default_messages_parser(tx: Transaction, prefixes: Bech32Prefixes) -> list[str]:
    return parse_addresses_from_events(tx, prefixes)


def join_message_parsers(*args: MessageAddressesParser, prefixes: Bech32Prefixes) -> MessageAddressesParser:
    """Return a parser giving the first non-empty result, falling back to the default one."""

    def parse(tx: Transaction) -> list[str]:
        for parser in args:
            try:
                addresses = parser(tx)
            except Exception:
                continue
            if addresses:
                return addresses
        return default_messages_parser(tx, prefixes)

    return parse


def handle_msg(
    index: int,
    msg: Message,
    tx: Transaction,
    parse_addresses: MessageAddressesParser,
    db: Database,
) -> None:
    """Store the message together with the addresses the transaction involves."""
    addresses = parse_addresses(tx)
    db.save_message(tx.height, tx.tx_hash, msg, addresses)


class MessagesModule(Module, MessageModule):
    """Stores every message in a dedicated table."""

    def __init__(self, parser: MessageAddressesParser, db: Database) -> None:
        self._parser = parser
        self._db = db

    def name(self) -> str:
        return "messages"

    def handle_msg(self, index: int, msg: Message, tx: Transaction) -> None:
        handle_msg(index, msg, tx, self._parser, self._db)