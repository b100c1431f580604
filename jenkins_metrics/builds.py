"""
Flatten a Jenkins job tree into per-build timing metrics.

The tree comes from a single ``/api/json?tree=jobs[...]`` call nested four
levels deep:

  folder -> job -> branch -> sub-branch
  e.g. https://jenkins.example.com/job/FOLDER/job/PROJECT/job/BRANCH/job/SUBBRANCH/

Each level carries its own builds.  Every build whose actions include a
TimeInQueueAction becomes one flat Build tagged with the names of all the
levels above it.  A build that cannot be converted is logged and skipped so
the rest of the tree still comes through.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import timedelta

from jenkins_metrics.errors import (
    BuildExtractionError,
    MetricsNotFound,
    MetricsOutOfRange,
    ParseError,
)
from jenkins_metrics.raw import (
    TIME_IN_QUEUE_ACTION,
    TIMING_FIELDS,
    BuildRaw,
    BuildsResponseRaw,
    JobRaw,
)

logger = logging.getLogger(__name__)

# folder, job, branch, sub-branch
MAX_TREE_DEPTH = 4

_BUILD_ID_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Build:
    folder_name: str
    job_name: str
    branch_name: str
    sub_branch_name: str
    id: int
    buildable_time: timedelta
    waiting_time: timedelta
    blocked_time: timedelta
    executing_time: timedelta
    building_duration: timedelta
    result: str

    @property
    def path(self) -> tuple[str, ...]:
        """Names of the levels this build was found under, top-down."""
        names = (self.folder_name, self.job_name, self.branch_name, self.sub_branch_name)
        return tuple(n for n in names if n)

    @property
    def full_name(self) -> str:
        return "/".join(self.path)

    @property
    def in_progress(self) -> bool:
        return self.result == ""


def builds_tree_query(depth: int = MAX_TREE_DEPTH) -> str:
    """Build the ``tree=`` selector fetching *depth* nested job levels.

    Jenkins' tree selector cannot filter list elements by value, so every
    action comes back (most of them as empty objects) and the
    TimeInQueueAction is picked out client side.
    """
    if depth < 1:
        raise ValueError("depth must be at least 1")
    builds = f"builds[id,result,actions[_class,{','.join(TIMING_FIELDS)}]]"
    query = f"jobs[name,{builds}]"
    for _ in range(depth - 1):
        query = f"jobs[name,{builds},{query}]"
    return query


def _parse_build_id(raw_id: str) -> int:
    if not _BUILD_ID_RE.fullmatch(raw_id):
        raise ParseError(raw_id)
    return int(raw_id)


def _duration(millis: int, build_id: str) -> timedelta:
    try:
        return timedelta(milliseconds=millis)
    except OverflowError:
        raise MetricsOutOfRange(build_id, millis) from None


def build_from_raw(
    raw: BuildRaw,
    folder_name: str = "",
    job_name: str = "",
    branch_name: str = "",
    sub_branch_name: str = "",
) -> Build:
    """Convert one raw build into a Build.

    Raises MetricsNotFound when no TimeInQueueAction is attached,
    ParseError when the id is not a non-negative integer and
    MetricsOutOfRange when a timing does not fit in a timedelta.  The result
    is carried over untouched, including "" for a build still running.
    """
    for action in raw.actions:
        if action.class_name != TIME_IN_QUEUE_ACTION:
            continue

        build_id = _parse_build_id(raw.id)
        metrics = action.timing_metrics()
        return Build(
            folder_name=folder_name,
            job_name=job_name,
            branch_name=branch_name,
            sub_branch_name=sub_branch_name,
            id=build_id,
            buildable_time=_duration(metrics.buildable_time_millis, raw.id),
            waiting_time=_duration(metrics.waiting_time_millis, raw.id),
            blocked_time=_duration(metrics.blocked_time_millis, raw.id),
            executing_time=_duration(metrics.executing_time_millis, raw.id),
            building_duration=_duration(metrics.building_duration_millis, raw.id),
            result=raw.result,
        )

    raise MetricsNotFound(raw.id)


def _walk(
    job: JobRaw,
    parents: tuple[str, ...],
    remove_in_progress_builds: bool,
    max_depth: int,
    out: list[Build],
) -> None:
    path = parents + (job.name,)

    for raw_build in job.builds:
        if remove_in_progress_builds and raw_build.result == "":
            continue

        try:
            build = build_from_raw(raw_build, *path)
        except BuildExtractionError as exc:
            logger.warning("skipping build %s/%s: %s", "/".join(path), raw_build.id, exc)
            continue

        out.append(build)

    if len(path) >= max_depth:
        if job.jobs:
            logger.debug("Not descending below %s: depth limit %d reached", "/".join(path), max_depth)
        return

    for child in job.jobs:
        _walk(child, path, remove_in_progress_builds, max_depth, out)


def flatten_builds(
    response: BuildsResponseRaw,
    remove_in_progress_builds: bool,
    max_depth: int = MAX_TREE_DEPTH,
) -> list[Build]:
    """Walk the job tree depth-first and return every extractable build.

    Top-level jobs are visited in the order given; a job's own builds come
    before the builds of its children, and each child's whole subtree comes
    before its next sibling.  Jobs nested deeper than *max_depth* are not
    visited.
    """
    if not 1 <= max_depth <= MAX_TREE_DEPTH:
        raise ValueError(f"max_depth must be between 1 and {MAX_TREE_DEPTH}")

    builds: list[Build] = []
    for job in response.jobs:
        _walk(job, (), remove_in_progress_builds, max_depth, builds)
    return builds
