"""Bech32 encoding and the address prefixes derived from a chain prefix."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_CHARSET_INDEX = {char: index for index, char in enumerate(CHARSET)}
_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
_DECODE_LIMIT = 1023
_MAX_ADDRESS_LENGTH = 255

PREFIX_PUBLIC = "pub"
PREFIX_VALIDATOR = "val"
PREFIX_OPERATOR = "oper"
PREFIX_CONSENSUS = "cons"


@dataclass(frozen=True)
class Bech32Prefixes:
    """Human readable parts used for account, validator and consensus keys."""

    account_addr: str
    account_pub: str
    validator_addr: str
    validator_pub: str
    consensus_addr: str
    consensus_pub: str


def default_config_setup(prefix: str) -> Bech32Prefixes:
    """Derive every address prefix from the chain's base prefix."""
    validator = prefix + PREFIX_VALIDATOR + PREFIX_OPERATOR
    consensus = prefix + PREFIX_VALIDATOR + PREFIX_CONSENSUS
    return Bech32Prefixes(
        account_addr=prefix,
        account_pub=prefix + PREFIX_PUBLIC,
        validator_addr=validator,
        validator_pub=validator + PREFIX_PUBLIC,
        consensus_addr=consensus,
        consensus_pub=consensus + PREFIX_PUBLIC,
    )


def _polymod(values: Iterable[int]) -> int:
    checksum = 1
    for value in values:
        top = checksum >> 25
        checksum = ((checksum & 0x1FFFFFF) << 5) ^ value
        for bit, generator in enumerate(_GENERATOR):
            if (top >> bit) & 1:
                checksum ^= generator
    return checksum


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _checksum(hrp: str, data: list[int]) -> list[int]:
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * 6) ^ 1
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def bech32_encode(hrp: str, data: Iterable[int]) -> str:
    """Encode 5-bit groups under the given human readable part."""
    hrp = hrp.lower()
    values = list(data)
    if any(not 0 <= value < 32 for value in values):
        raise ValueError("data values must be 5-bit integers")
    combined = values + _checksum(hrp, values)
    return hrp + "1" + "".join(CHARSET[value] for value in combined)


def bech32_decode(bech: str) -> tuple[str, list[int]]:
    """Split a bech32 string into its lower-case prefix and 5-bit data."""
    if len(bech) > _DECODE_LIMIT:
        raise ValueError(f"invalid bech32 string length {len(bech)}")
    if any(not 33 <= ord(char) <= 126 for char in bech):
        raise ValueError("invalid character in bech32 string")
    lower = bech.lower()
    if lower != bech and bech.upper() != bech:
        raise ValueError("string not all lowercase or all uppercase")
    separator = lower.rfind("1")
    if separator < 1 or separator + 7 > len(lower):
        raise ValueError("invalid separator index")
    hrp = lower[:separator]
    try:
        data = [_CHARSET_INDEX[char] for char in lower[separator + 1:]]
    except KeyError as exc:
        raise ValueError(f"invalid character not part of charset: {exc.args[0]}") from None
    if _polymod(_hrp_expand(hrp) + data) != 1:
        raise ValueError("invalid checksum")
    return hrp, data[:-6]


def convert_bits(data: Iterable[int], from_bits: int, to_bits: int, pad: bool) -> list[int]:
    """Regroup a sequence of from_bits-wide values into to_bits-wide values."""
    accumulator = 0
    bits = 0
    result: list[int] = []
    max_value = (1 << to_bits) - 1
    for value in data:
        if value < 0 or value >> from_bits:
            raise ValueError("invalid data range")
        accumulator = (accumulator << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            result.append((accumulator >> bits) & max_value)
    if pad:
        if bits:
            result.append((accumulator << (to_bits - bits)) & max_value)
    elif bits >= from_bits or (accumulator << (to_bits - bits)) & max_value:
        raise ValueError("invalid padding")
    return result


def address_from_bech32(address: str, expected_prefix: str) -> bytes:
    """Decode an address, checking its prefix and length."""
    if not address.strip():
        raise ValueError("empty address string is not allowed")
    hrp, data = bech32_decode(address)
    if hrp != expected_prefix:
        raise ValueError(f"invalid Bech32 prefix; expected {expected_prefix}, got {hrp}")
    raw = bytes(convert_bits(data, 5, 8, False))
    if not raw:
        raise ValueError("addresses cannot be empty")
    if len(raw) > _MAX_ADDRESS_LENGTH:
        raise ValueError(
            f"address max length is {_MAX_ADDRESS_LENGTH}, got {len(raw)}"
        )
    return raw