import pytest

from chainindexer.modules import BlockModule, MessageModule, Module, Modules


class _Named(Module):
    def __init__(self, label):
        self.label = label

    def name(self):
        return self.label


class _Recorder(Module, BlockModule, MessageModule):
    def __init__(self):
        self.seen = []

    def name(self):
        return "recorder"

    def handle_block(self, block, results, txs, vals):
        self.seen.append(("block", block))

    def handle_msg(self, index, msg, tx):
        self.seen.append(("msg", index))


def test_find_by_name_case_insensitive():
    bank = _Named("Bank")
    mods = Modules([_Named("staking"), bank])
    assert mods.find_by_name("bank") is bank
    assert mods.find_by_name("BANK") is bank


def test_find_by_name_missing():
    mods = Modules([_Named("staking")])
    assert mods.find_by_name("gov") is None


def test_find_by_name_returns_first_match():
    first, second = _Named("dup"), _Named("DUP")
    assert Modules([first, second]).find_by_name("dup") is first


def test_modules_is_a_list():
    mods = Modules()
    mods.append(_Named("a"))
    assert len(mods) == 1
    assert mods.find_by_name("a") is mods[0]


def test_abstract_module_cannot_instantiate():
    with pytest.raises(TypeError):
        Module()


def test_incomplete_capability_cannot_instantiate():
    class _Broken(Module, BlockModule):
        def name(self):
            return "broken"

    with pytest.raises(TypeError, match="abstract"):
        Modules([_Broken()])


def test_capabilities_dispatch():
    recorder = _Recorder()
    mods = Modules([recorder, _Named("plain")])
    for module in mods:
        if isinstance(module, BlockModule):
            module.handle_block(10, None, [], None)
        if isinstance(module, MessageModule):
            module.handle_msg(0, None, None)
    assert recorder.seen == [("block", 10), ("msg", 0)]