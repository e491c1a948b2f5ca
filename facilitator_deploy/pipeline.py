from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from .context import InstallCtx
from .errors import StepExecutionError
from .state_store import MarkerStore

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single idempotent provisioning step."""

    ordinal: int
    description: str

    def satisfied(self, ctx: InstallCtx) -> bool:
        ...

    def run(self, ctx: InstallCtx) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[int]
    skipped_steps: List[int]


def validate_steps(steps: Sequence[Step]) -> None:
    ordinals = [s.ordinal for s in steps]
    if ordinals and ordinals != list(range(ordinals[0], ordinals[0] + len(ordinals))):
        raise ValueError(f"Step ordinals must be contiguous and increasing, got {ordinals}")


def run_pipeline(
    *,
    ctx: InstallCtx,
    steps: Sequence[Step],
    store: Optional[MarkerStore] = None,
    force: bool = False,
) -> PipelineResult:
    """Run steps in order with resume/idempotency semantics.

    Without a store every step runs (fctl deploy/update reuse the last steps
    this way). A failing step raises StepExecutionError and leaves the markers
    already written on disk, so the next run resumes at that step.
    """

    validate_steps(steps)
    total = steps[-1].ordinal if steps else 0

    ran: List[int] = []
    skipped: List[int] = []

    for step in steps:
        label = f"Step {step.ordinal}/{total}: {step.description}"

        if store is not None and (not force) and store.is_done(step.ordinal):
            logger.info("%s (already done, skipping)", label)
            skipped.append(step.ordinal)
            continue

        logger.info("%s", label)
        try:
            if step.satisfied(ctx):
                logger.info("%s (already satisfied)", label)
            else:
                step.run(ctx)
        except StepExecutionError:
            raise
        except (RuntimeError, OSError) as e:
            raise StepExecutionError(step.ordinal, step.description, str(e)) from e

        if store is not None:
            store.mark_done(step.ordinal)
        ran.append(step.ordinal)

    return PipelineResult(ran_steps=ran, skipped_steps=skipped)
