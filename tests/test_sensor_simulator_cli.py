import os
import random
import sys
import threading
from unittest.mock import MagicMock

import requests

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from apps import sensor_simulator_cli as cli
from core.models.domain import SystemType
from core.simulator.sensor_simulator import SensorSimulator, SimulatorConfig

API = "http://localhost:8080"


def response(status, body=None):
    mock = MagicMock()
    mock.status_code = status
    mock.json.return_value = body or {}
    return mock


def test_parse_args_from_environment(monkeypatch):
    monkeypatch.setenv("PROJECT_ID", "p-env")
    monkeypatch.setenv("SYSTEM_TYPE", "dc-system")
    monkeypatch.setenv("ENABLE_FAULTS", "true")

    config = cli.build_config(cli.parse_args([]))

    assert config.system_type == SystemType.DC
    assert config.enable_faults is True
    assert config.interval_ms == 5000


def test_flags_override_environment(monkeypatch):
    monkeypatch.setenv("PROJECT_ID", "p-env")

    args = cli.parse_args(["--project-id", "p-flag", "--interval-ms", "1000", "--nominal-voltage", "230"])

    assert args.project_id == "p-flag"
    assert cli.build_config(args).nominal_voltage == 230


def test_send_measurement_outcomes():
    measurement = SensorSimulator("p1", rng=random.Random(1)).generate_measurement()
    http = MagicMock()

    http.post.return_value = response(201)
    assert cli.send_measurement(http, API, measurement) is True
    url = http.post.call_args[0][0]
    assert url == f"{API}/api/measurements"
    assert http.post.call_args[1]["json"]["projectId"] == "p1"

    http.post.return_value = response(400, {"success": False, "error": "Validation failed"})
    assert cli.send_measurement(http, API, measurement) is False

    http.post.side_effect = requests.exceptions.ConnectionError("refused")
    assert cli.send_measurement(http, API, measurement) is False


def test_main_stops_when_project_missing(monkeypatch):
    monkeypatch.delenv("PROJECT_ID", raising=False)
    http = MagicMock()
    http.get.return_value = response(404, {"success": False})

    assert cli.main(["--project-id", "missing"], http=http) == 1
    http.post.assert_not_called()


def test_run_posts_until_limit():
    http = MagicMock()
    http.post.return_value = response(201)
    simulator = SensorSimulator("p1", SimulatorConfig(interval_ms=100), rng=random.Random(2))

    sent = cli.run(simulator, http, API, threading.Event(), max_samples=3)

    assert sent == 3
    assert http.post.call_count == 3


def test_run_returns_immediately_once_stopped():
    http = MagicMock()
    stop = threading.Event()
    stop.set()

    assert cli.run(SensorSimulator("p1"), http, API, stop) == 0
    http.post.assert_not_called()
