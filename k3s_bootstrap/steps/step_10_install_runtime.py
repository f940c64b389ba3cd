from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import RuntimeInstallFailure
from ..lib.command import CommandError, run_cmd
from ..lib.env import DRIVER_PATHS, DriverPaths
from ..state_store import INSTALLING_RUNTIME, site_value

logger = logging.getLogger(__name__)


class InstallRuntimeStep:
    step_id = "10_install_runtime"
    enter_phase = INSTALLING_RUNTIME
    exit_phase = None

    def __init__(self, paths: DriverPaths = DRIVER_PATHS):
        self.paths = paths

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        version = str(site_value(state, "k8s_version"))

        logger.info("Installing K3s version %s...", version)
        try:
            run_cmd(
                ["curl", "-sfL", "-o", self.paths.k3s_installer_script, self.paths.k3s_installer_url],
                dry_run=dry_run,
            )
            run_cmd(
                ["sh", self.paths.k3s_installer_script],
                env={"INSTALL_K3S_VERSION": version},
                dry_run=dry_run,
            )
        except CommandError as e:
            raise RuntimeInstallFailure(f"K3s {version} installation failed: {e}") from e

        state.setdefault("cluster", {})["k8s_version"] = version
        return state
