import urllib.error
import urllib.request

import pytest

from chainindexer.telemetry import (
    TelemetryConfig,
    TelemetryModule,
    parse_config,
    run_additional_operations,
    start_metrics_server,
)


def test_parse_config_reads_port():
    cfg = parse_config(b"telemetry:\n  port: 5000\n")
    assert cfg == TelemetryConfig(port=5000)


def test_parse_config_absent_section():
    assert parse_config(b"invalid_field: yes") is None


def test_parse_config_rejects_negative_port():
    with pytest.raises(ValueError):
        parse_config("telemetry:\n  port: -1\n")


def test_run_without_config_fails():
    with pytest.raises(ValueError, match="no telemetry config found"):
        run_additional_operations(None)


def test_module_name_and_missing_config():
    module = TelemetryModule.from_config_bytes(b"other: 1")
    assert module.name() == "telemetry"
    with pytest.raises(ValueError):
        module.run_additional_operations()


def test_metrics_endpoint_serves_registry():
    server = start_metrics_server(TelemetryConfig(port=0))
    try:
        port = server.server_address[1]
        with urllib.request.urlopen(f"http://127.0.0.1:{port}/metrics", timeout=5) as response:
            body = response.read().decode()
            assert response.status == 200
        assert "juno_error_count" in body
        assert "# TYPE juno_initial_height counter" in body
    finally:
        server.shutdown()
        server.server_close()


def test_unknown_path_is_not_found():
    module = TelemetryModule(TelemetryConfig(port=0))
    server = module.run_additional_operations()
    try:
        port = server.server_address[1]
        with pytest.raises(urllib.error.HTTPError) as info:
            urllib.request.urlopen(f"http://127.0.0.1:{port}/other", timeout=5)
        assert info.value.code == 404
    finally:
        server.shutdown()
        server.server_close()