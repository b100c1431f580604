"""
Jenkins REST client for build timing metrics and pipeline stages.

Transport failures surface as TransportError/DecodeError so callers (MCP
tools) can decide how to report them.  Everything past the HTTP call is a
pure transformation of the already-decoded JSON.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, TypeVar

import requests
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from jenkins_metrics.builds import (
    MAX_TREE_DEPTH,
    Build,
    build_from_raw,
    builds_tree_query,
    flatten_builds,
)
from jenkins_metrics.errors import DecodeError, TransportError
from jenkins_metrics.raw import TIMING_FIELDS, BuildRaw, BuildsResponseRaw, WorkflowRunRaw
from jenkins_metrics.stages import Stage, stages_from_raw
from jenkins_metrics.urls import build_api_url, workflow_run_url

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30

_RETRYABLE_STATUSES = {429, 502, 503, 504}
_MAX_RETRIES = 2
_RETRY_DELAYS = (1, 3)  # seconds between retry 0→1 and 1→2

_BUILD_TREE = f"id,result,actions[_class,{','.join(TIMING_FIELDS)}]"

_ModelT = TypeVar("_ModelT", bound=BaseModel)


def _env_flag(name: str, default: str = "true") -> bool:
    return os.environ.get(name, default).lower() not in ("false", "0", "no")


def _decode(model: type[_ModelT], data: Any, url: str) -> _ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(
            f"Response from {url} does not match {model.__name__}: {exc}"
        ) from exc


class JenkinsClient:
    """Read-only view of one Jenkins server's build metrics."""

    def __init__(
        self,
        server_url: str,
        user: str = "",
        token: str = "",
        timeout: float = _DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        max_retries: int = _MAX_RETRIES,
    ):
        self.server_url = server_url.rstrip("/")
        self.auth = (user, token) if user else None
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.max_retries = max(0, min(max_retries, len(_RETRY_DELAYS)))

    @classmethod
    def from_env(cls) -> JenkinsClient:
        """Build a client from JENKINS_* variables (a .env file is honoured)."""
        load_dotenv()

        url = os.environ.get("JENKINS_URL", "").rstrip("/")
        user = os.environ.get("JENKINS_USER", "")
        token = os.environ.get("JENKINS_TOKEN", "")

        missing = [k for k, v in {
            "JENKINS_URL": url,
            "JENKINS_USER": user,
            "JENKINS_TOKEN": token,
        }.items() if not v]

        if missing:
            raise EnvironmentError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Copy .env.example to .env and fill in your credentials."
            )

        verify_ssl = _env_flag("JENKINS_VERIFY_SSL")
        if not verify_ssl:
            import urllib3
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        timeout = float(os.environ.get("JENKINS_TIMEOUT", str(_DEFAULT_TIMEOUT)))
        return cls(url, user, token, timeout=timeout, verify_ssl=verify_ssl)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def do(self, method: str, url: str) -> Any:
        """Issue a request and return the decoded JSON body.

        Transient failures (429/502/503/504, connection errors, timeouts)
        are retried a bounded number of times before giving up.
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = requests.request(
                    method, url, auth=self.auth, timeout=self.timeout, verify=self.verify_ssl,
                )
                if response.status_code in _RETRYABLE_STATUSES and attempt < self.max_retries:
                    time.sleep(_RETRY_DELAYS[attempt])
                    continue
                response.raise_for_status()
            except requests.HTTPError as exc:
                status = exc.response.status_code if exc.response is not None else None
                logger.debug("Jenkins HTTP %s for %s", status, url)
                raise TransportError(f"Jenkins returned HTTP {status} for {url}", status) from exc
            except requests.ConnectionError as exc:
                if attempt < self.max_retries:
                    time.sleep(_RETRY_DELAYS[attempt])
                    continue
                raise TransportError(
                    f"Cannot reach Jenkins at {self.server_url}. "
                    "Verify the server is running and JENKINS_URL is correct."
                ) from exc
            except requests.Timeout as exc:
                if attempt < self.max_retries:
                    time.sleep(_RETRY_DELAYS[attempt])
                    continue
                raise TransportError(
                    f"Jenkins did not respond within {self.timeout} seconds ({url})."
                ) from exc
            except requests.RequestException as exc:
                raise TransportError(f"Request to {url} failed: {exc}") from exc

            try:
                return response.json()
            except ValueError as exc:
                raise DecodeError(f"Response from {url} is not valid JSON: {exc}") from exc

        raise TransportError(f"Exhausted retries for {url}")

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def builds(self, include_in_progress: bool) -> list[Build]:
        """Every build in the job tree that carries timing metrics.

        When *include_in_progress* is False, builds without a result yet are
        dropped before extraction.  Builds that cannot be converted are
        logged and skipped; only fetch failures are raised.
        """
        url = f"{self.server_url}/api/json?tree={builds_tree_query(MAX_TREE_DEPTH)}"
        data = self.do("GET", url)
        response = _decode(BuildsResponseRaw, data, url)
        return flatten_builds(response, remove_in_progress_builds=not include_in_progress)

    def build(
        self,
        folder_name: str,
        build_id: int,
        job_name: str = "",
        branch_name: str = "",
        sub_branch_name: str = "",
    ) -> Build:
        """Timing metrics of a single build.

        Unlike builds(), a build id that does not parse or a missing
        TimeInQueueAction is raised to the caller.
        """
        names = (folder_name, job_name, branch_name, sub_branch_name)
        url = build_api_url(self.server_url, build_id, *names, tree=_BUILD_TREE)
        raw = _decode(BuildRaw, self.do("GET", url), url)
        return build_from_raw(raw, folder_name, job_name, branch_name, sub_branch_name)

    # ------------------------------------------------------------------
    # Stages (Workflow API)
    # ------------------------------------------------------------------

    def stages(self, folder_name: str, job_name: str, branch_name: str,
               build_id: int) -> list[Stage]:
        """Ordered stage list of one pipeline build."""
        url = workflow_run_url(self.server_url, folder_name, job_name, branch_name, build_id)
        run = _decode(WorkflowRunRaw, self.do("GET", url), url)
        return stages_from_raw(run)
