from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict

from ..errors import ReadinessTimeout
from ..lib.command import run_cmd
from ..lib.env import DRIVER_PATHS, DriverPaths
from ..state_store import AWAITING_READY

logger = logging.getLogger(__name__)

DEFAULT_READY_TIMEOUT = 300.0
DEFAULT_READY_INTERVAL = 5.0


class AwaitReadyStep:
    """Poll the control plane until it is ready, bounded by timeout.

    Ready means the node token has been written and the API server answers
    /readyz.
    """

    step_id = "20_await_ready"
    enter_phase = AWAITING_READY
    exit_phase = None

    def __init__(
        self,
        paths: DriverPaths = DRIVER_PATHS,
        *,
        timeout: float = DEFAULT_READY_TIMEOUT,
        interval: float = DEFAULT_READY_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if timeout <= 0 or interval <= 0:
            raise ValueError("timeout and interval must be positive")
        self.paths = paths
        self.timeout = timeout
        self.interval = interval
        self.clock = clock
        self.sleep = sleep

    def is_ready(self) -> bool:
        if not Path(self.paths.node_token).is_file():
            return False
        r = run_cmd(
            [self.paths.k3s_bin, "kubectl", "get", "--raw=/readyz"],
            check=False,
            env={"KUBECONFIG": self.paths.kubeconfig},
        )
        return r.ok

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        if bool(cfg.get("dry_run", False)):
            logger.info("Would wait up to %ss for the control plane", self.timeout)
            return state

        start = self.clock()
        deadline = start + self.timeout
        attempts = 0
        while True:
            attempts += 1
            if self.is_ready():
                waited = self.clock() - start
                logger.info("Control plane ready after %.1fs (%d probes)", waited, attempts)
                state.setdefault("cluster", {})["ready_after_seconds"] = round(waited, 1)
                return state

            remaining = deadline - self.clock()
            if remaining <= 0:
                raise ReadinessTimeout(
                    f"Control plane not ready after {self.timeout}s ({attempts} probes)"
                )
            logger.info("Control plane not ready yet; retrying in %.0fs", min(self.interval, remaining))
            self.sleep(min(self.interval, remaining))
