import pytest

from chainindexer.bech32 import bech32_encode, convert_bits, default_config_setup
from chainindexer.database import Event, EventAttribute, Message, Transaction
from chainindexer.modules import Modules
from chainindexer.pruning import PruningConfig
from chainindexer.registrar import DefaultRegistrar, EmptyRegistrar, RegistrarContext, get_modules

CONFIG = """
pruning:
  keep_recent: 100
  keep_every: 10
  interval: 1
telemetry:
  port: 5000
"""


class RecordingLogger:
    def __init__(self):
        self.errors = []

    def error(self, msg, **kwargs):
        self.errors.append((msg, kwargs))

    def debug(self, msg, **kwargs):
        pass


class RecordingDatabase:
    def __init__(self):
        self.saved = []

    def save_message(self, height, tx_hash, msg, addresses):
        self.saved.append((height, tx_hash, msg, addresses))


@pytest.fixture
def context():
    return RegistrarContext(
        config_bytes=CONFIG,
        prefixes=default_config_setup("cosmos"),
        database=RecordingDatabase(),
        logger=RecordingLogger(),
    )


def test_empty_registrar_builds_nothing(context):
    assert list(EmptyRegistrar().build_modules(context)) == []


def test_default_registrar_module_names(context):
    mods = DefaultRegistrar().build_modules(context)
    assert [m.name() for m in mods] == ["pruning", "messages", "telemetry"]


def test_default_registrar_reads_config(context):
    mods = DefaultRegistrar().build_modules(context)
    pruning = mods.find_by_name("pruning")
    assert pruning.cfg == PruningConfig(keep_recent=100, keep_every=10, interval=1)
    assert mods.find_by_name("telemetry").cfg.port == 5000


def test_default_parser_uses_context_prefixes(context):
    address = bech32_encode("cosmos", convert_bits(bytes(range(20)), 8, 5, True))
    tx = Transaction(
        tx_hash="ABC",
        height=7,
        events=[Event(type="transfer", attributes=[EventAttribute(key="sender", value=address)])],
    )
    msg = Message(tx_hash="ABC", index=0, type="t", value="{}")
    mods = DefaultRegistrar().build_modules(context)
    mods.find_by_name("messages").handle_msg(0, msg, tx)
    assert context.database.saved == [(7, "ABC", msg, [address])]


def test_custom_parser_is_used(context):
    registrar = DefaultRegistrar(lambda tx: ["custom"])
    msg = Message(tx_hash="H", index=0, type="t", value="{}")
    registrar.build_modules(context).find_by_name("messages").handle_msg(
        0, msg, Transaction(tx_hash="H", height=3)
    )
    assert context.database.saved[0][3] == ["custom"]


def test_get_modules_selects_and_logs_missing(context):
    mods = DefaultRegistrar().build_modules(context)
    logger = RecordingLogger()
    selected = get_modules(mods, ["Messages", "unknown", "pruning"], logger)
    assert [m.name() for m in selected] == ["messages", "pruning"]
    assert len(logger.errors) == 1
    assert logger.errors[0][1] == {"module": "unknown"}


def test_get_modules_with_no_names():
    logger = RecordingLogger()
    assert get_modules(Modules(), [], logger) == []
    assert logger.errors == []