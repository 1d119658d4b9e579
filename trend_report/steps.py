"""Normalization of runner step trees."""

import logging
from collections.abc import Sequence

from trend_report.models.attempt import RawStep
from trend_report.models.report import StepNode
from trend_report.text import strip_ansi

log = logging.getLogger(__name__)


def normalize_steps(steps: Sequence[RawStep]) -> Sequence[StepNode]:
    """Convert runner steps into a pass/fail tree with clean text.

    A step is failed when it carries an error, passed otherwise. A step
    that reappears inside its own subtree is truncated at that point.
    """
    return _normalize(steps, frozenset())


def _normalize(
    steps: Sequence[RawStep], ancestors: frozenset[int]
) -> Sequence[StepNode]:
    nodes: list[StepNode] = []
    for step in steps:
        if id(step) in ancestors:
            log.warning("Cyclic step tree at %r, truncating", step.title)
            continue
        nodes.append(
            StepNode(
                title=strip_ansi(step.title),
                status="failed" if step.error is not None else "passed",
                duration=step.duration,
                error=strip_ansi(step.error) if step.error is not None else None,
                steps=_normalize(step.steps, ancestors | {id(step)}),
            )
        )
    return nodes
