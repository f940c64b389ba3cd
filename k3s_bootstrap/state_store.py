from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import RuntimeInstallFailure, StateInvalid

logger = logging.getLogger(__name__)

# Phases of the post-install driver, in order.
NOT_STARTED = "not-started"
INSTALLING_RUNTIME = "installing-runtime"
AWAITING_READY = "awaiting-ready"
TOKEN_EXTRACTED = "token-extracted"
COMPONENTS_INSTALLED = "components-installed"
DESCRIPTOR_WRITTEN = "descriptor-written"
DONE = "done"

PHASES = (
    NOT_STARTED,
    INSTALLING_RUNTIME,
    AWAITING_READY,
    TOKEN_EXTRACTED,
    COMPONENTS_INSTALLED,
    DESCRIPTOR_WRITTEN,
    DONE,
)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    try:
        if _detect_format(p) == "yaml":
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise StateInvalid(f"State file {path} is not valid: {e}") from e

    if not isinstance(data, dict):
        raise StateInvalid(f"State file {path} must hold an object/dict, got {type(data).__name__}")
    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    """Persist state. The file holds the join token, so it is owner-only."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) == "yaml":
        text = yaml.safe_dump(state, sort_keys=False)
    else:
        text = json.dumps(state, indent=2, sort_keys=True) + "\n"

    tmp = p.with_name(p.name + ".tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(text)
    os.replace(tmp, p)


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with defaults (without overriding existing values)."""

    state.setdefault("version", 1)
    state.setdefault("config", {})
    state.setdefault("cluster", {})
    state.setdefault("execution", {})

    exe = state["execution"]
    exe.setdefault("phase", NOT_STARTED)
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])
    exe.setdefault("warnings", [])
    return state


def set_phase(state: Dict[str, Any], phase: str) -> None:
    if phase not in PHASES:
        raise ValueError(f"Unknown phase: {phase}")
    exe = state.setdefault("execution", {})
    previous = exe.get("phase", NOT_STARTED)
    if previous != phase:
        logger.info("Phase %s -> %s", previous, phase)
    exe["phase"] = phase


def add_warning(state: Dict[str, Any], **entry: Any) -> None:
    state.setdefault("execution", {}).setdefault("warnings", []).append(entry)


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed


def site_value(state: Dict[str, Any], key: str) -> Any:
    site = (state.get("config") or {}).get("site") or {}
    if key not in site:
        raise RuntimeInstallFailure(f"config.site.{key} missing; run 05_load_site_config first")
    return site[key]
