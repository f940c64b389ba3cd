from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.command import CommandError, run_cmd
from ..state_store import add_warning

logger = logging.getLogger(__name__)

# API server, ingress http/https
ALLOWED_PORTS = ("6443/tcp", "80/tcp", "443/tcp")


class ConfigureFirewallStep:
    """Advisory hardening: rules are applied but failures only warn."""

    step_id = "60_configure_firewall"
    enter_phase = None
    exit_phase = None

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))

        applied: list[str] = []
        enabled = False
        try:
            for port in ALLOWED_PORTS:
                run_cmd(["ufw", "allow", port], dry_run=dry_run)
                applied.append(port)
            run_cmd(["ufw", "--force", "enable"], dry_run=dry_run)
            enabled = True
        except CommandError as e:
            logger.warning("Firewall configuration incomplete (continuing): %s", e)
            add_warning(state, firewall=str(e))

        state.setdefault("execution", {}).setdefault("decisions", {})["firewall"] = {
            "allowed": applied,
            "enabled": enabled,
        }
        logger.info("Firewall enabled=%s allowed=%s", enabled, ",".join(applied))
        return state
