from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..errors import RuntimeInstallFailure
from ..lib.env import DRIVER_PATHS, DriverPaths
from ..state_store import TOKEN_EXTRACTED

logger = logging.getLogger(__name__)

DRY_RUN_TOKEN = "<dry-run>"


class ExtractTokenStep:
    step_id = "30_extract_token"
    enter_phase = None
    exit_phase = TOKEN_EXTRACTED

    def __init__(self, paths: DriverPaths = DRIVER_PATHS):
        self.paths = paths

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        if bool(cfg.get("dry_run", False)):
            state.setdefault("cluster", {})["join_token"] = DRY_RUN_TOKEN
            return state

        p = Path(self.paths.node_token)
        try:
            token = p.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise RuntimeInstallFailure(f"Cannot read node token {p}: {e}") from e
        if not token:
            raise RuntimeInstallFailure(f"Node token file is empty: {p}")

        state.setdefault("cluster", {})["join_token"] = token
        logger.info("Node token extracted from %s", p)
        return state
