import pytest

from chainindexer.migrate_utils import (
    CUSTOM_ACCOUNT_PARSER,
    DEFAULT_ACCOUNT_PARSER,
    TransactionRow,
    message_parser,
)


def _items(result):
    assert result.startswith("{") and result.endswith("}")
    return result[1:-1].split(",")


def test_empty_message_gives_empty_array():
    assert message_parser({}) == "{}"


def test_non_string_values_are_ignored():
    assert message_parser({"signer": 5, "voter": None}) == "{}"


def test_roles_follow_default_order():
    result = message_parser({"from_address": "addr1", "to_address": "addr2"})
    assert _items(result) == ["addr2", "addr1"]


def test_custom_roles_come_after_default_ones():
    result = message_parser({"blocker": "b", "signer": "s"})
    assert _items(result) == ["s", "b"]


def test_sender_is_listed_by_both_parsers():
    assert "sender" in DEFAULT_ACCOUNT_PARSER and "sender" in CUSTOM_ACCOUNT_PARSER
    assert _items(message_parser({"sender": "x"})) == ["x", "x"]


def test_input_and_output_addresses():
    msg = {
        "input": [{"address": "in1"}, {"address": "in2"}],
        "output": [{"address": "out1"}],
    }
    assert _items(message_parser(msg)) == ["in1", "in2", "out1"]


def test_input_with_non_string_address_raises():
    with pytest.raises(TypeError):
        message_parser({"input": [{"address": 3}]})


def test_transaction_row_defaults():
    row = TransactionRow(hash="h", height=4)
    assert (row.hash, row.height, row.messages, row.logs) == ("h", 4, "", "")