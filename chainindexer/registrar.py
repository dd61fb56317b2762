"""Building the list of modules the indexer runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from chainindexer.bech32 import Bech32Prefixes
from chainindexer.messages import MessageAddressesParser, MessagesModule, default_messages_parser
from chainindexer.modules import Module, Modules
from chainindexer.pruning import PruningModule
from chainindexer.telemetry import TelemetryModule


@dataclass
class RegistrarContext:
    """What a registrar needs to build its modules."""

    config_bytes: bytes | str
    prefixes: Bech32Prefixes
    database: Any
    proxy: Any = None
    logger: Any = None


class EmptyRegistrar:
    """Registers no module at all."""

    def build_modules(self, context: RegistrarContext) -> Modules:
        return Modules()


class DefaultRegistrar:
    """Registers the pruning, messages and telemetry modules."""

    def __init__(self, parser: MessageAddressesParser | None = None) -> None:
        self._parser = parser

    def build_modules(self, context: RegistrarContext) -> Modules:
        parser = self._parser
        if parser is None:
            prefixes = context.prefixes

            def parser(tx):
                return default_messages_parser(tx, prefixes)

        return Modules(
            [
                PruningModule.from_config_bytes(context.config_bytes, context.database, context.logger),
                MessagesModule(parser, context.database),
                TelemetryModule.from_config_bytes(context.config_bytes),
            ]
        )


def get_modules(mods: Modules, names: Iterable[str], logger: Any) -> list[Module]:
    """Pick the modules with the given names, logging every name that is not registered."""
    selected: list[Module] = []
    for name in names:
        module = mods.find_by_name(name)
        if module is not None:
            selected.append(module)
        else:
            logger.error(
                "Module is required but not registered. Be sure to register it using registrar.RegisterModule",
                module=name,
            )
    return selected