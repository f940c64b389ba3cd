from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .state_store import DONE, is_step_completed, mark_step_completed, set_phase

logger = logging.getLogger(__name__)

Checkpoint = Callable[[Dict[str, Any]], None]


class Step(Protocol):
    """A single idempotent step.

    enter_phase is recorded before run(), exit_phase after it succeeds;
    either may be None when the step does not move the state machine.
    """

    step_id: str
    enter_phase: Optional[str]
    exit_phase: Optional[str]

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def _execute(step: Step, state: Dict[str, Any], checkpoint: Checkpoint) -> Dict[str, Any]:
    if step.enter_phase:
        set_phase(state, step.enter_phase)
    checkpoint(state)

    logger.info("Running step %s", step.step_id)
    state = step.run(state)

    mark_step_completed(state, step.step_id)
    if step.exit_phase:
        set_phase(state, step.exit_phase)
    checkpoint(state)
    return state


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    on_transition: Optional[Checkpoint] = None,
) -> PipelineResult:
    """Run steps in order, skipping the ones already completed unless force.

    on_transition receives the state whenever it changes (phase entered,
    step completed), so callers can persist it. The machine only reaches
    DONE when every step has completed.
    """

    ids = [s.step_id for s in steps]
    for name, value in (("start_at", start_at), ("stop_after", stop_after)):
        if value is not None and value not in ids:
            raise ValueError(f"Unknown step for {name}: {value} (known: {', '.join(ids)})")

    checkpoint: Checkpoint = on_transition or (lambda _s: None)
    first = ids.index(start_at) if start_at is not None else 0

    ran: List[str] = []
    skipped: List[str] = []
    stopped_early = False

    for step in steps[first:]:
        state.setdefault("execution", {})["current_step"] = step.step_id

        if is_step_completed(state, step.step_id) and not force:
            logger.info("Step %s already completed; skipping", step.step_id)
            skipped.append(step.step_id)
        else:
            state = _execute(step, state, checkpoint)
            ran.append(step.step_id)

        if step.step_id == stop_after:
            stopped_early = step.step_id != ids[-1]
            logger.info("Stopping after %s", stop_after)
            break

    state.setdefault("execution", {})["current_step"] = None
    if not stopped_early and all(is_step_completed(state, i) for i in ids):
        set_phase(state, DONE)
    checkpoint(state)
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
