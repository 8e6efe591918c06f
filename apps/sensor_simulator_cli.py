#!/usr/bin/env python3
"""
Hardware Sensor Simulator
=========================
Stands in for field hardware: generates measurements for one project and
posts them to a running WireScope API until interrupted.

Usage:
    python apps/sensor_simulator_cli.py --project-id <id> [options]

Every option falls back to an environment variable (API_BASE_URL,
PROJECT_ID, INTERVAL_MS, SYSTEM_TYPE, NOMINAL_VOLTAGE, MAX_CURRENT,
ENABLE_FAULTS, VARIABILITY_PERCENT).
"""

import argparse
import os
import signal
import sys
import threading

# Add project root to sys.path to allow importing from core
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import logging

import requests
from dotenv import load_dotenv

from core.models.domain import Measurement, SystemType
from core.simulator.sensor_simulator import SensorSimulator, SimulatorConfig
from core.utils.logging_config import setup_logging

logger = logging.getLogger("sensor_simulator_cli")

REQUEST_TIMEOUT = 5  # seconds


def parse_args(argv=None) -> argparse.Namespace:
    load_dotenv()
    defaults = SimulatorConfig()

    parser = argparse.ArgumentParser(description="Post simulated sensor measurements to the WireScope API")
    parser.add_argument("--api-url", default=os.getenv("API_BASE_URL", "http://localhost:8080"),
                        help="API base URL (default: http://localhost:8080)")
    parser.add_argument("--project-id", default=os.getenv("PROJECT_ID"),
                        help="Project to generate measurements for")
    parser.add_argument("--interval-ms", type=int, default=int(os.getenv("INTERVAL_MS", defaults.interval_ms)))
    parser.add_argument("--system-type", choices=[s.value for s in SystemType],
                        default=os.getenv("SYSTEM_TYPE", defaults.system_type.value))
    parser.add_argument("--nominal-voltage", type=float,
                        default=float(os.getenv("NOMINAL_VOLTAGE", defaults.nominal_voltage)))
    parser.add_argument("--max-current", type=float, default=float(os.getenv("MAX_CURRENT", defaults.max_current)))
    parser.add_argument("--enable-faults", action="store_true",
                        default=os.getenv("ENABLE_FAULTS", "false").lower() == "true")
    parser.add_argument("--variability", type=float,
                        default=float(os.getenv("VARIABILITY_PERCENT", defaults.variability_percent)),
                        help="Normal variability in percent (default: 2)")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))

    args = parser.parse_args(argv)
    if not args.project_id:
        parser.error("--project-id (or PROJECT_ID) is required")
    return args


def build_config(args: argparse.Namespace) -> SimulatorConfig:
    return SimulatorConfig(
        interval_ms=args.interval_ms,
        system_type=SystemType(args.system_type),
        nominal_voltage=args.nominal_voltage,
        max_current=args.max_current,
        enable_faults=args.enable_faults,
        variability_percent=args.variability,
    )


def fetch_project(http, api_url: str, project_id: str):
    """Returns the project document, or None if the API does not know it."""
    try:
        response = http.get(f"{api_url}/api/projects/{project_id}", timeout=REQUEST_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.error(f"[SIMULATOR] Could not reach API at {api_url}: {e}")
        return None

    if response.status_code != 200:
        return None
    return response.json().get("data")


def send_measurement(http, api_url: str, measurement: Measurement) -> bool:
    try:
        response = http.post(
            f"{api_url}/api/measurements",
            json=measurement.to_dict(),
            timeout=REQUEST_TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"[SIMULATOR] Network error: {e}")
        return False

    if response.status_code == 201:
        logger.info("[SIMULATOR] Measurement sent")
        return True

    try:
        detail = response.json().get("error")
    except ValueError:
        detail = response.text
    logger.error(f"[SIMULATOR] Unexpected response status {response.status_code}: {detail}")
    return False


def run(simulator: SensorSimulator, http, api_url: str, stop_event: threading.Event, max_samples=None) -> int:
    """Posts one measurement per interval until ``stop_event`` is set. Returns the number sent."""
    interval = simulator.config.interval_ms / 1000
    sent = 0
    attempts = 0

    while not stop_event.is_set():
        if send_measurement(http, api_url, simulator.generate_measurement()):
            sent += 1
            if simulator.fault_scenario is not None:
                logger.info(f"[SIMULATOR] Current fault: {simulator.fault_scenario.value}")

        attempts += 1
        if max_samples is not None and attempts >= max_samples:
            break
        stop_event.wait(interval)

    return sent


def main(argv=None, http=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    config = build_config(args)
    http = http or requests.Session()

    logger.info("[SIMULATOR] Hardware Sensor Simulator for WireScope")
    project = fetch_project(http, args.api_url, args.project_id)
    if project is None:
        logger.error(
            f"[SIMULATOR] Project {args.project_id} not found. Create it first with "
            f"POST {args.api_url}/api/projects"
        )
        return 1
    logger.info(f"[SIMULATOR] Project found: {project.get('name')}")

    logger.info(
        f"[SIMULATOR] {config.system_type.value}, {config.nominal_voltage:g}V nominal, "
        f"every {config.interval_ms}ms, faults {'on' if config.enable_faults else 'off'}"
    )

    stop_event = threading.Event()

    def shutdown(signum, frame):
        logger.info(f"[SIMULATOR] Received {signal.Signals(signum).name}, shutting down gracefully...")
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    sent = run(SensorSimulator(args.project_id, config), http, args.api_url, stop_event)
    logger.info(f"[SIMULATOR] Stopped after {sent} measurements")
    return 0


if __name__ == "__main__":
    sys.exit(main())
