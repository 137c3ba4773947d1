from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence

from .config import InstallConfig
from .lib.devops import DeviceOps
from .state_store import mark_step_completed

logger = logging.getLogger(__name__)


@dataclass
class InstallContext:
    config: InstallConfig
    ops: DeviceOps
    state: Dict[str, Any] = field(default_factory=dict)

    @property
    def decisions(self) -> Dict[str, Any]:
        return self.state.setdefault("execution", {}).setdefault("decisions", {})


class Step(Protocol):
    """A single provisioning stage. Steps run once, in order, never resumed."""

    step_id: str

    def run(self, ctx: InstallContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]


def run_pipeline(*, ctx: InstallContext, steps: Sequence[Step]) -> PipelineResult:
    """Run steps strictly in order; the first failure propagates."""

    ran: List[str] = []
    exe = ctx.state.setdefault("execution", {})

    for step in steps:
        exe["current_step"] = step.step_id
        logger.info("Running step %s", step.step_id)
        step.run(ctx)
        mark_step_completed(ctx.state, step.step_id)
        ran.append(step.step_id)

    exe["current_step"] = None
    return PipelineResult(state=ctx.state, ran_steps=ran)
