"""Map a build's workflow API stage list into Stage records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from jenkins_metrics.errors import DecodeError
from jenkins_metrics.raw import StageRaw, WorkflowRunRaw


@dataclass(frozen=True)
class Stage:
    name: str
    status: str
    duration: timedelta


def stage_from_raw(raw: StageRaw) -> Stage:
    try:
        duration = timedelta(milliseconds=raw.duration_millis)
    except OverflowError:
        raise DecodeError(
            f"stage '{raw.name}': duration {raw.duration_millis}ms is out of range"
        ) from None
    return Stage(name=raw.name, status=raw.status, duration=duration)


def stages_from_raw(run: WorkflowRunRaw) -> list[Stage]:
    """One Stage per source stage, in source order, nothing dropped."""
    return [stage_from_raw(s) for s in run.stages]
