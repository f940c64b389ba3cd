from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict

from ..errors import AddonInstallFailure
from ..lib.command import CommandError, run_cmd
from ..lib.env import DRIVER_PATHS, DriverPaths
from ..state_store import COMPONENTS_INSTALLED, add_warning

logger = logging.getLogger(__name__)

HELM_VERSION = "v3.12.0"
HELM_URL = f"https://get.helm.sh/helm-{HELM_VERSION}-linux-amd64.tar.gz"

ADDON_MANIFESTS = {
    "ingress-nginx": "https://raw.githubusercontent.com/kubernetes/ingress-nginx/controller-v1.8.1/deploy/static/provider/cloud/deploy.yaml",
    "kubernetes-dashboard": "https://raw.githubusercontent.com/kubernetes/dashboard/v2.7.0/aio/deploy/recommended.yaml",
}


class InstallComponentsStep:
    """Helm plus the ingress controller and dashboard. Best effort: a failed
    add-on is logged and recorded, never fatal."""

    step_id = "40_install_components"
    enter_phase = None
    exit_phase = COMPONENTS_INSTALLED

    def __init__(self, paths: DriverPaths = DRIVER_PATHS):
        self.paths = paths

    def _install_helm(self, *, dry_run: bool) -> None:
        with tempfile.TemporaryDirectory(prefix="helm-") as tmp:
            tarball = str(Path(tmp) / "helm.tar.gz")
            run_cmd(["curl", "-fsSL", "-o", tarball, HELM_URL], dry_run=dry_run)
            run_cmd(["tar", "-xzf", tarball, "-C", tmp], dry_run=dry_run)
            run_cmd(
                ["install", "-m", "0755", str(Path(tmp) / "linux-amd64" / "helm"), self.paths.helm_bin],
                dry_run=dry_run,
            )

    def _apply_manifest(self, url: str, *, dry_run: bool) -> None:
        run_cmd(
            [self.paths.k3s_bin, "kubectl", "apply", "-f", url],
            env={"KUBECONFIG": self.paths.kubeconfig},
            dry_run=dry_run,
        )

    def _best_effort(self, state: Dict[str, Any], name: str, fn: Callable[[], None]) -> bool:
        try:
            fn()
        except (CommandError, OSError) as e:
            failure = AddonInstallFailure(f"{name}: {e}")
            logger.warning("%s (continuing): %s", type(failure).__name__, failure)
            add_warning(state, addon=name, error=str(e))
            return False
        logger.info("Installed %s", name)
        return True

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))

        logger.info("Installing additional K3s components...")
        results: Dict[str, bool] = {}
        results["helm"] = self._best_effort(state, "helm", lambda: self._install_helm(dry_run=dry_run))
        for name, url in ADDON_MANIFESTS.items():
            results[name] = self._best_effort(
                state, name, lambda url=url: self._apply_manifest(url, dry_run=dry_run)
            )

        state.setdefault("cluster", {})["addons"] = results
        return state
