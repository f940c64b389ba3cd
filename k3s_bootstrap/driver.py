"""Post-install driver.

Runs once inside the freshly installed target root (the installer's
late-commands call it through post-install.sh). Every step transition is
checkpointed to the state file, so an operator can rerun it after a crash
and it resumes after the last completed step. The driver never retries a
step on its own.
"""

from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

from .errors import BootstrapError
from .lib.env import DRIVER_PATHS, DriverPaths
from .logging_utils import configure_logging
from .pipeline import Step, run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    AwaitReadyStep,
    ConfigureFirewallStep,
    ExtractTokenStep,
    InstallComponentsStep,
    InstallRuntimeStep,
    LoadSiteConfigStep,
    RegisterMonitoringStep,
    WriteDescriptorStep,
)
from .steps.step_20_await_ready import DEFAULT_READY_INTERVAL, DEFAULT_READY_TIMEOUT

logger = logging.getLogger(__name__)


def build_steps(
    *,
    site_config_path: str,
    paths: DriverPaths = DRIVER_PATHS,
    ready_timeout: float = DEFAULT_READY_TIMEOUT,
    ready_interval: float = DEFAULT_READY_INTERVAL,
    **await_kwargs: Any,
) -> List[Step]:
    return [
        LoadSiteConfigStep(site_config_path),
        InstallRuntimeStep(paths),
        AwaitReadyStep(paths, timeout=ready_timeout, interval=ready_interval, **await_kwargs),
        ExtractTokenStep(paths),
        InstallComponentsStep(paths),
        WriteDescriptorStep(paths),
        ConfigureFirewallStep(),
        RegisterMonitoringStep(paths),
    ]


def run(
    *,
    site_config_path: str = DRIVER_PATHS.site_config,
    state_path: str = DRIVER_PATHS.state_default,
    log_path: str = DRIVER_PATHS.log_default,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    dry_run: bool = False,
    steps: Optional[List[Step]] = None,
) -> Dict[str, Any]:
    """Run the driver pipeline, persisting state at every transition."""

    actual_log_path = configure_logging(log_path=log_path)

    state = ensure_defaults(load_state(state_path))
    state["config"]["dry_run"] = dry_run
    state["config"]["site_config_path"] = site_config_path
    state["execution"].setdefault("paths", {})["log_path_actual"] = actual_log_path

    if steps is None:
        steps = build_steps(site_config_path=site_config_path)

    def checkpoint(s: Dict[str, Any]) -> None:
        # Dry runs leave the state file untouched.
        if not dry_run:
            save_state(state_path, s)

    try:
        result = run_pipeline(
            state=state,
            steps=steps,
            start_at=start_at,
            stop_after=stop_after,
            force=force,
            on_transition=checkpoint,
        )
        state = result.state
        summary = state["execution"].setdefault("summary", {})
        summary["ran_steps"] = result.ran_steps
        summary["skipped_steps"] = result.skipped_steps
        logger.info("Driver finished in phase %s", state["execution"]["phase"])
        return state
    except Exception as e:
        logger.exception("Post-install driver failed in phase %s", state["execution"].get("phase"))
        state["execution"].setdefault("errors", []).append(
            {
                "step": state["execution"].get("current_step"),
                "phase": state["execution"].get("phase"),
                "error": f"{type(e).__name__}: {e}",
            }
        )
        raise
    finally:
        checkpoint(state)
        if dry_run:
            logger.info("Dry run: state file %s left unchanged", state_path)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="k3s-bootstrap-driver")
    p.add_argument("--site-config", default=DRIVER_PATHS.site_config, help="Embedded site configuration")
    p.add_argument("--state", default=DRIVER_PATHS.state_default, help="Path to driver state (json|yaml)")
    p.add_argument("--log", default=DRIVER_PATHS.log_default, help="Path to driver log")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_extract_token)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("--ready-timeout", type=float, default=DEFAULT_READY_TIMEOUT, help="Seconds to wait for the control plane")
    p.add_argument("--ready-interval", type=float, default=DEFAULT_READY_INTERVAL, help="Seconds between readiness probes")
    p.add_argument("--dry-run", action="store_true")

    args = p.parse_args(argv)
    if args.ready_timeout <= 0 or args.ready_interval <= 0:
        p.error("--ready-timeout and --ready-interval must be positive")

    steps = build_steps(
        site_config_path=args.site_config,
        ready_timeout=args.ready_timeout,
        ready_interval=args.ready_interval,
    )
    known = [s.step_id for s in steps]
    for flag, value in (("--start-at", args.start_at), ("--stop-after", args.stop_after)):
        if value is not None and value not in known:
            p.error(f"{flag}: unknown step {value!r} (choose from {', '.join(known)})")

    try:
        run(
            site_config_path=args.site_config,
            state_path=args.state,
            log_path=args.log,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=args.force,
            dry_run=args.dry_run,
            steps=steps,
        )
    except BootstrapError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
