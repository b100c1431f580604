"""Per-build endpoint construction.

Jenkins nests folders and multi-branch jobs as repeated ``/job/<name>``
segments:

  'infra'                -> <server>/job/infra
  'infra', 'api', 'main' -> <server>/job/infra/job/api/job/main

Each name is percent-encoded to handle spaces, '#', '%', etc.
"""

from __future__ import annotations

import re
from urllib.parse import quote, urlsplit

from jenkins_metrics.errors import URLConstructionError

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def _check_server_url(server_url: str) -> str:
    parts = urlsplit(server_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise URLConstructionError(f"invalid Jenkins server URL '{server_url}'")
    return server_url.rstrip("/")


def _segment(name: str) -> str:
    if name in (".", ".."):
        raise URLConstructionError(f"invalid path segment '{name}'")
    if _CONTROL_CHARS_RE.search(name):
        raise URLConstructionError(f"path segment {name!r} contains control characters")
    return quote(name, safe="")


def job_url(server_url: str, *names: str) -> str:
    """Join the non-empty job names under *server_url* as /job/ segments.

    Names are taken in order up to the first empty one; the first name
    (the folder) is mandatory.
    """
    base = _check_server_url(server_url)
    if not names or not names[0]:
        raise URLConstructionError("folder name must not be empty")

    segments = []
    for name in names:
        if not name:
            break
        segments.append(_segment(name))
    return base + "/job/" + "/job/".join(segments)


def workflow_run_url(server_url: str, folder_name: str, job_name: str,
                     branch_name: str, build_id: int) -> str:
    """Workflow API endpoint describing one build's stages.

    Only folder, job and branch levels are addressable; an empty job name
    addresses the folder directly and an empty branch name addresses
    folder/job.
    """
    if build_id < 0:
        raise URLConstructionError(f"invalid build id {build_id}")
    if not job_name:
        branch_name = ""
    return f"{job_url(server_url, folder_name, job_name, branch_name)}/{build_id}/wfapi/describe"


def build_api_url(server_url: str, build_id: int, *names: str, tree: str = "") -> str:
    """JSON API endpoint of one build, optionally narrowed by a tree selector."""
    if build_id < 0:
        raise URLConstructionError(f"invalid build id {build_id}")
    url = f"{job_url(server_url, *names)}/{build_id}/api/json"
    if tree:
        url += f"?tree={tree}"
    return url
