import logging
import threading
from typing import Callable, Optional

from core.models.domain import Measurement
from core.simulator.sensor_simulator import SensorSimulator, SimulatorConfig

logger = logging.getLogger(__name__)


class SimulatorSession:
    """
    Runs at most one ``SensorSimulator`` on a background thread and hands every
    generated measurement to ``sink``.

    A failing sink is logged and the loop carries on with the next sample.
    """

    def __init__(
        self,
        sink: Callable[[Measurement], object],
        config: Optional[SimulatorConfig] = None,
        stop_timeout: float = 5.0,
    ):
        self._sink = sink
        self.stop_timeout = stop_timeout
        self.config = config or SimulatorConfig()
        # Guards start, stop and reconfigure; held across join
        self._lock = threading.RLock()
        self._stats_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self.simulator: Optional[SensorSimulator] = None
        self.project_id: Optional[str] = None
        self.generated = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, project_id: str, config: Optional[SimulatorConfig] = None) -> bool:
        """Starts generating for ``project_id``. Returns False if already running."""
        with self._lock:
            if self.running:
                logger.info(f"[SIMULATOR] Already running for project {self.project_id}")
                return False

            if config is not None:
                self.config = config

            self.project_id = project_id
            self.simulator = SensorSimulator(project_id, self.config)
            with self._stats_lock:
                self.generated = 0
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self.simulator, self._stop_event),
                name="sensor-simulator",
                daemon=True,
            )
            self._thread.start()

        logger.info(
            f"[SIMULATOR] Started for project {project_id} "
            f"({self.config.system_type.value}, every {self.config.interval_ms}ms)"
        )
        return True

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Stops the loop. Returns False if nothing was running, or if the worker
        did not exit within ``timeout``; the session then still counts as
        running and a later ``stop`` can retry.
        """
        with self._lock:
            if not self.running:
                return False
            timeout = self.stop_timeout if timeout is None else timeout
            self._stop_event.set()
            self._thread.join(timeout)

            if self._thread.is_alive():
                logger.warning(f"[SIMULATOR] Worker for project {self.project_id} did not stop within {timeout}s")
                return False

            self._thread = None
            self.simulator = None

        logger.info(f"[SIMULATOR] Stopped after {self.generated} measurements")
        return True

    def reconfigure(self, **overrides) -> SimulatorConfig:
        """Applies config overrides; a running session restarts with them."""
        with self._lock:
            new_config = self.config.merged(**overrides)
            self.config = new_config

            if self.running:
                if self.stop():
                    self.start(self.project_id)
                else:
                    logger.warning("[SIMULATOR] Restart skipped; new configuration applies on next start")

        logger.info(f"[SIMULATOR] Configuration updated: {new_config.to_dict()}")
        return new_config

    def status(self) -> dict:
        running = self.running
        return {
            "isRunning": running,
            "projectId": self.project_id if running else None,
            "config": self.config.to_dict(),
            "measurementsGenerated": self.generated,
            "activeFault": (
                self.simulator.fault_scenario.value
                if running and self.simulator and self.simulator.fault_scenario
                else None
            ),
        }

    def tick(self, simulator: SensorSimulator) -> Optional[Measurement]:
        """Generates one measurement and forwards it to the sink."""
        try:
            measurement = simulator.generate_measurement()
            self._sink(measurement)
        except Exception:
            logger.exception(f"[SIMULATOR] Failed to generate or store measurement for {simulator.project_id}")
            return None

        with self._stats_lock:
            self.generated += 1
            count = self.generated
        logger.debug(f"[SIMULATOR] Generated measurement #{count} for {simulator.project_id}")
        return measurement

    def _run(self, simulator: SensorSimulator, stop_event: threading.Event):
        interval = simulator.config.interval_ms / 1000
        while not stop_event.is_set():
            self.tick(simulator)
            stop_event.wait(interval)
