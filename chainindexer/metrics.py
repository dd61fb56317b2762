"""In-process metrics rendered in the Prometheus text exposition format."""

from __future__ import annotations

import math
import threading
from typing import Iterable, Protocol


def _format_value(value: float) -> str:
    if math.isfinite(value) and float(value).is_integer() and abs(value) < 1e15:
        return str(int(value))
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return repr(float(value))


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _header(name: str, help_text: str, kind: str) -> str:
    return f"# HELP {name} {_escape_help(help_text)}\n# TYPE {name} {kind}\n"


class _Metric(Protocol):
    name: str

    def render(self) -> str: ...


class Counter:
    """A monotonically increasing value."""

    def __init__(self, name: str, help_text: str) -> None:
        self.name = name
        self.help = help_text
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def inc(self) -> None:
        self.add(1)

    def add(self, value: float) -> None:
        if value < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._value += value

    def render(self) -> str:
        return _header(self.name, self.help, "counter") + f"{self.name} {_format_value(self.value)}\n"


class GaugeVec:
    """A family of gauges partitioned by label values."""

    def __init__(self, name: str, help_text: str, label_names: Iterable[str]) -> None:
        self.name = name
        self.help = help_text
        self.label_names = tuple(label_names)
        self._values: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def _key(self, label_values: tuple) -> tuple[str, ...]:
        if len(label_values) != len(self.label_names):
            raise ValueError(
                f"inconsistent label cardinality: expected {len(self.label_names)} "
                f"label values but got {len(label_values)} in {list(label_values)!r}"
            )
        return tuple(str(v) for v in label_values)

    def set(self, value: float, *args) -> None:
        key = self._key(args)
        with self._lock:
            self._values[key] = float(value)

    def get(self, *args) -> float:
        key = self._key(args)
        with self._lock:
            return self._values.get(key, 0.0)

    def render(self) -> str:
        with self._lock:
            items = sorted(self._values.items())
        if not items:
            return ""
        lines = [_header(self.name, self.help, "gauge")]
        for key, value in items:
            labels = ",".join(
                f'{label}="{_escape_label(val)}"' for label, val in zip(self.label_names, key)
            )
            lines.append(f"{self.name}{{{labels}}} {_format_value(value)}\n")
        return "".join(lines)


class Registry:
    """A collection of uniquely named metrics."""

    def __init__(self) -> None:
        self._metrics: dict[str, _Metric] = {}
        self._lock = threading.Lock()

    def register(self, metric: _Metric) -> None:
        with self._lock:
            if metric.name in self._metrics:
                raise ValueError("duplicate metrics collector registration attempted")
            self._metrics[metric.name] = metric

    def render(self) -> str:
        with self._lock:
            metrics = [self._metrics[name] for name in sorted(self._metrics)]
        return "".join(metric.render() for metric in metrics)


START_HEIGHT = Counter("juno_initial_height", "Initial parsing height.")
WORKER_COUNT = Counter("juno_worker_count", "Number of active workers.")
WORKER_HEIGHT = GaugeVec(
    "juno_last_indexed_height", "Height of the last indexed block.", ["worker_index", "chain_id"]
)
ERROR_COUNT = Counter("juno_error_count", "Total number of errors emitted.")
DB_BLOCK_COUNT = GaugeVec(
    "juno_db_total_blocks", "Total number of blocks in database.", ["total_blocks_in_db"]
)
DB_LATEST_HEIGHT = GaugeVec(
    "juno_db_latest_height", "Latest block height in the database.", ["db_latest_height"]
)

REGISTRY = Registry()
for _metric in (START_HEIGHT, WORKER_COUNT, WORKER_HEIGHT, ERROR_COUNT, DB_BLOCK_COUNT, DB_LATEST_HEIGHT):
    REGISTRY.register(_metric)