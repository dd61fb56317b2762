"""Telemetry module exposing the metrics over HTTP."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import yaml

from chainindexer.metrics import REGISTRY
from chainindexer.modules import AdditionalOperationsModule, Module

MODULE_NAME = "telemetry"
_READ_TIMEOUT = 5


@dataclass
class TelemetryConfig:
    port: int = 0


def parse_config(data: bytes | str) -> TelemetryConfig | None:
    """Read the telemetry section of a configuration document; None if it is absent."""
    document = yaml.safe_load(data)
    if document is None:
        return None
    if not isinstance(document, dict):
        raise ValueError("configuration document must be a mapping")
    section = document.get("telemetry")
    if section is None:
        return None
    if not isinstance(section, dict):
        raise ValueError("telemetry configuration must be a mapping")
    port = section.get("port")
    if port is None:
        port = 0
    if isinstance(port, bool) or not isinstance(port, int) or port < 0:
        raise ValueError(f"telemetry port must be a non-negative integer, got {port!r}")
    return TelemetryConfig(port=port)


class _MetricsHandler(BaseHTTPRequestHandler):
    timeout = _READ_TIMEOUT

    def do_GET(self) -> None:
        if self.path.split("?", 1)[0] != "/metrics":
            body = b"404 page not found\n"
            self.send_response(404)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
        else:
            body = REGISTRY.render().encode("utf-8")
            self.send_response(200)
            self.send_header("Content-Type", "text/plain; version=0.0.4; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        pass


def start_metrics_server(cfg: TelemetryConfig) -> ThreadingHTTPServer:
    """Bind the metrics server on the configured port and serve it in a background thread."""
    server = ThreadingHTTPServer(("", cfg.port), _MetricsHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, name="metrics-server", daemon=True)
    thread.start()
    return server


def run_additional_operations(cfg: TelemetryConfig | None) -> ThreadingHTTPServer:
    if cfg is None:
        raise ValueError("no telemetry config found")
    return start_metrics_server(cfg)


class TelemetryModule(Module, AdditionalOperationsModule):
    """Serves the collected metrics."""

    def __init__(self, cfg: TelemetryConfig | None) -> None:
        self.cfg = cfg
        self.server: ThreadingHTTPServer | None = None

    @classmethod
    def from_config_bytes(cls, data: bytes | str) -> "TelemetryModule":
        return cls(parse_config(data))

    def name(self) -> str:
        return MODULE_NAME

    def run_additional_operations(self) -> ThreadingHTTPServer:
        self.server = run_additional_operations(self.cfg)
        return self.server