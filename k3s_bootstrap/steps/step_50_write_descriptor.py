from __future__ import annotations

import logging
from typing import Any, Dict

from ..descriptor import ClusterDescriptor
from ..errors import RuntimeInstallFailure
from ..lib.assets import write_file
from ..lib.command import CommandError, run_cmd
from ..lib.env import DRIVER_PATHS, DriverPaths
from ..state_store import DESCRIPTOR_WRITTEN, site_value

logger = logging.getLogger(__name__)


def primary_address(*, dry_run: bool = False) -> str:
    """First address reported by `hostname -I`."""

    if dry_run:
        return "127.0.0.1"
    try:
        r = run_cmd(["hostname", "-I"])
    except CommandError as e:
        raise RuntimeInstallFailure(f"Unable to determine master address: {e}") from e
    fields = (r.stdout or "").split()
    if not fields:
        raise RuntimeInstallFailure("Unable to determine master address: hostname -I returned nothing")
    return fields[0]


class WriteDescriptorStep:
    step_id = "50_write_descriptor"
    enter_phase = None
    exit_phase = DESCRIPTOR_WRITTEN

    def __init__(self, paths: DriverPaths = DRIVER_PATHS):
        self.paths = paths

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        cluster = state.setdefault("cluster", {})

        token = cluster.get("join_token")
        if not token:
            raise RuntimeInstallFailure("cluster.join_token missing; run 30_extract_token first")

        descriptor = ClusterDescriptor(
            master_address=primary_address(dry_run=dry_run),
            join_token=str(token),
            k8s_version=str(site_value(state, "k8s_version")),
            expected_node_count=int(site_value(state, "node_count")),
        )
        write_file("/", self.paths.descriptor, descriptor.render(), mode=0o600, dry_run=dry_run)

        cluster["master_address"] = descriptor.master_address
        cluster["descriptor_path"] = self.paths.descriptor
        logger.info("Master node is ready at: %s", descriptor.master_address)
        logger.info("Cluster descriptor (incl. join token) written to %s", self.paths.descriptor)
        logger.info("Dashboard: %s", descriptor.dashboard_url)
        return state
