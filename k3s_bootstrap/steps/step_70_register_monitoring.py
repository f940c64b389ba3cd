from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..lib.assets import write_file
from ..lib.command import CommandError, run_cmd
from ..lib.env import DRIVER_PATHS, DriverPaths
from ..state_store import add_warning

logger = logging.getLogger(__name__)

PROMETHEUS_REPO = "https://prometheus-community.github.io/helm-charts"


def render_monitoring_unit(paths: DriverPaths = DRIVER_PATHS) -> str:
    helm = paths.helm_bin
    return (
        "[Unit]\n"
        "Description=K3s Cluster Monitoring (one-shot kube-prometheus-stack install)\n"
        "After=network-online.target k3s.service\n"
        "Wants=network-online.target\n"
        "\n"
        "[Service]\n"
        "Type=oneshot\n"
        f"Environment=KUBECONFIG={paths.kubeconfig}\n"
        f"ExecStart={helm} repo add prometheus-community {PROMETHEUS_REPO}\n"
        f"ExecStart={helm} repo update\n"
        f"ExecStart={helm} install monitoring prometheus-community/kube-prometheus-stack\n"
        "RemainAfterExit=yes\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )


class RegisterMonitoringStep:
    """Register the monitoring install to run in the background on boot.
    Not verified here."""

    step_id = "70_register_monitoring"
    enter_phase = None
    exit_phase = None

    def __init__(self, paths: DriverPaths = DRIVER_PATHS):
        self.paths = paths

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        unit = Path(self.paths.monitoring_unit).name

        registered = False
        try:
            write_file("/", self.paths.monitoring_unit, render_monitoring_unit(self.paths), dry_run=dry_run)
            run_cmd(["systemctl", "enable", unit], dry_run=dry_run)
            registered = True
        except (CommandError, OSError) as e:
            logger.warning("Monitoring unit not registered (continuing): %s", e)
            add_warning(state, monitoring=str(e))

        state.setdefault("execution", {}).setdefault("decisions", {})["monitoring_unit"] = {
            "unit": unit,
            "registered": registered,
        }
        return state
