"""
Jenkins Build Metrics MCP Server

A Model Context Protocol server that flattens Jenkins' nested job tree into
per-build queue/execution timings and per-stage durations, rendered as
compact text for the AI's context window.

Transport: Streamable HTTP by default (MCP_TRANSPORT=http, host 0.0.0.0, port 8000).
           Set MCP_TRANSPORT=stdio to use stdio instead (e.g. for Cursor/Claude Desktop).
Logs:      All application logs go to stderr to avoid corrupting the JSON-RPC stream.
"""

import logging
import os
import sys
from datetime import timedelta
from functools import lru_cache

from dotenv import load_dotenv
from fastmcp import FastMCP

from jenkins_metrics.builds import Build
from jenkins_metrics.client import JenkinsClient
from jenkins_metrics.errors import (
    BuildExtractionError,
    DecodeError,
    MetricsNotFound,
    TransportError,
    URLConstructionError,
)
from jenkins_metrics.stages import Stage

load_dotenv()

# Route all library and application logs to stderr, never stdout.
logging.basicConfig(
    stream=sys.stderr,
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("jenkins-metrics-mcp")

_MAX_BUILD_ROWS = 200

mcp = FastMCP(
    "Jenkins Build Metrics",
    instructions=(
        "You are a Jenkins CI performance assistant. "
        "Use list_build_metrics to see how long every build waited in the queue and executed, "
        "across folders, multi-branch jobs and branches. "
        "Use get_build_metrics for a single build, and get_build_stages to see which pipeline "
        "stage of a build took the time."
    ),
)


@lru_cache(maxsize=1)
def _client() -> JenkinsClient:
    return JenkinsClient.from_env()


def _handle_error(exc: Exception, context: str) -> str:
    """Convert common exceptions into readable strings for the AI."""
    if isinstance(exc, TransportError):
        if exc.status_code == 401:
            return f"[{context}] Authentication failed (401). Check JENKINS_USER and JENKINS_TOKEN."
        if exc.status_code == 404:
            return f"[{context}] Not found (404). Verify the folder/job/branch names and build number."
        return f"[{context}] {exc}"
    if isinstance(exc, DecodeError):
        return f"[{context}] Unexpected response from Jenkins: {exc}"
    if isinstance(exc, MetricsNotFound):
        return (
            f"[{context}] Build {exc.build_id} has no queue metrics. "
            "Is the Jenkins Metrics plugin installed?"
        )
    if isinstance(exc, (BuildExtractionError, URLConstructionError, EnvironmentError)):
        return f"[{context}] {exc}"
    return f"[{context}] Unexpected error: {exc}"


def _format_duration(value: timedelta) -> str:
    return f"{value.total_seconds():.1f}s"


def _format_builds(builds: list[Build], folder: str = "") -> str:
    if folder:
        builds = [b for b in builds if b.folder_name == folder]
    if not builds:
        scope = f" in folder '{folder}'" if folder else ""
        return f"No builds with queue metrics found{scope}."

    lines = [f"{len(builds)} build(s) with queue metrics:\n"]
    lines.append(
        f"  {'Build':<50} {'Result':<12} {'Waiting':>9} {'Blocked':>9} "
        f"{'Buildable':>10} {'Executing':>10} {'Total':>9}"
    )
    lines.append(f"  {'-'*50} {'-'*12} {'-'*9} {'-'*9} {'-'*10} {'-'*10} {'-'*9}")
    for b in builds[:_MAX_BUILD_ROWS]:
        name = f"{b.full_name} #{b.id}"
        lines.append(
            f"  {name:<50} {b.result or 'IN_PROGRESS':<12} "
            f"{_format_duration(b.waiting_time):>9} {_format_duration(b.blocked_time):>9} "
            f"{_format_duration(b.buildable_time):>10} {_format_duration(b.executing_time):>10} "
            f"{_format_duration(b.building_duration):>9}"
        )
    if len(builds) > _MAX_BUILD_ROWS:
        lines.append(f"\n[Output truncated at {_MAX_BUILD_ROWS} builds]")
    return "\n".join(lines)


def _format_build(build: Build) -> str:
    lines = [
        f"Build:      {build.full_name} #{build.id}",
        f"Result:     {build.result or 'IN_PROGRESS'}",
        f"Waiting:    {_format_duration(build.waiting_time)}",
        f"Blocked:    {_format_duration(build.blocked_time)}",
        f"Buildable:  {_format_duration(build.buildable_time)}",
        f"Executing:  {_format_duration(build.executing_time)}",
        f"Total:      {_format_duration(build.building_duration)}",
    ]
    return "\n".join(lines)


def _format_stages(stages: list[Stage], title: str) -> str:
    if not stages:
        return f"Pipeline has no stages recorded for {title}."

    lines = [f"Pipeline stages for {title}:\n"]
    lines.append(f"  {'Stage':<30} {'Status':<15} {'Duration':>10}")
    lines.append(f"  {'-'*30} {'-'*15} {'-'*10}")
    for s in stages:
        lines.append(f"  {s.name:<30} {s.status:<15} {_format_duration(s.duration):>10}")

    slowest = max(stages, key=lambda s: s.duration)
    lines.append(f"\nSlowest stage: {slowest.name} ({_format_duration(slowest.duration)})")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool
def list_build_metrics(include_in_progress: bool = False, folder: str = "") -> str:
    """List queue and execution timings for every build in the job tree.

    Args:
        include_in_progress: Also list builds that have no result yet.
        folder: Only show builds under this top-level folder.
    """
    try:
        builds = _client().builds(include_in_progress)
    except Exception as exc:
        return _handle_error(exc, "list_build_metrics")
    return _format_builds(builds, folder)


@mcp.tool
def get_build_metrics(
    folder: str,
    build_id: int,
    job: str = "",
    branch: str = "",
    sub_branch: str = "",
) -> str:
    """Show queue and execution timings for one build.

    Args:
        folder: Top-level folder (or job) name.
        build_id: Build number.
        job: Job inside the folder, if any.
        branch: Branch of a multi-branch job, if any.
        sub_branch: Sub-branch, if any.
    """
    try:
        build = _client().build(folder, build_id, job, branch, sub_branch)
    except Exception as exc:
        return _handle_error(exc, "get_build_metrics")
    return _format_build(build)


@mcp.tool
def get_build_stages(folder: str, build_id: int, job: str = "", branch: str = "") -> str:
    """Show status and duration of each pipeline stage of a build.

    Args:
        folder: Top-level folder (or job) name.
        build_id: Build number.
        job: Job inside the folder, if any.
        branch: Branch of a multi-branch job, if any.
    """
    try:
        stages = _client().stages(folder, job, branch, build_id)
    except Exception as exc:
        return _handle_error(exc, "get_build_stages")
    title = "/".join(n for n in (folder, job, branch) if n) + f" #{build_id}"
    return _format_stages(stages, title)


def main() -> None:
    transport = os.getenv("MCP_TRANSPORT", "http")
    host = os.getenv("MCP_HOST", "0.0.0.0")
    port = int(os.getenv("MCP_PORT", "8000"))

    if transport == "stdio":
        mcp.run(transport="stdio", show_banner=False)
    else:
        print(
            f"Jenkins Build Metrics MCP server starting\n"
            f"  Local:    http://127.0.0.1:{port}/mcp",
            file=sys.stderr,
        )
        mcp.run(transport=transport, host=host, port=port, show_banner=False)


if __name__ == "__main__":
    main()
