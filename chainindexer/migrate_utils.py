"""Row layout of the old transaction table and message address extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

CUSTOM_ACCOUNT_PARSER = (
    "sender", "receiver", "user", "counterparty", "blocker", "blocked",
)

DEFAULT_ACCOUNT_PARSER = (
    "signer", "sender", "to_address", "from_address", "delegator_address",
    "validator_address", "submitter", "proposer", "depositor", "voter",
    "validator_dst_address", "validator_src_address",
)


@dataclass
class TransactionRow:
    """A row of the transaction table before partitioning."""

    hash: str = ""
    height: int = 0
    success: str = ""
    messages: str = ""
    memo: str = ""
    signatures: str = ""
    signer_infos: str = ""
    fee: str = ""
    gas_wanted: str = ""
    gas_used: str = ""
    raw_log: str = ""
    logs: str = ""


def _entry_addresses(entries: Any) -> list[str]:
    if not isinstance(entries, list) or not all(isinstance(e, Mapping) for e in entries):
        return []
    addresses = []
    for entry in entries:
        address = entry.get("address")
        if not isinstance(address, str):
            raise TypeError(f"entry address must be a string, got {type(address).__name__}")
        addresses.append(address)
    return addresses


def message_parser(msg: Mapping[str, Any]) -> str:
    """Return the addresses named in a decoded message as a PostgreSQL array literal."""
    addresses = [
        msg[role]
        for role in DEFAULT_ACCOUNT_PARSER + CUSTOM_ACCOUNT_PARSER
        if isinstance(msg.get(role), str)
    ]
    addresses += _entry_addresses(msg.get("input"))
    addresses += _entry_addresses(msg.get("output"))
    return "{" + ",".join(addresses) + "}"