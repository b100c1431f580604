"""Tests for the MCP text rendering and error handling helpers."""

from __future__ import annotations

from datetime import timedelta

from jenkins_metrics.builds import Build
from jenkins_metrics.errors import (
    DecodeError,
    MetricsNotFound,
    MetricsOutOfRange,
    ParseError,
    TransportError,
    URLConstructionError,
)
from jenkins_metrics.stages import Stage
from server import _MAX_BUILD_ROWS, _format_build, _format_builds, _format_stages, _handle_error


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build(build_id=1, folder="infra", job="", result="SUCCESS", waiting_ms=1500) -> Build:
    return Build(
        folder_name=folder,
        job_name=job,
        branch_name="",
        sub_branch_name="",
        id=build_id,
        buildable_time=timedelta(0),
        waiting_time=timedelta(milliseconds=waiting_ms),
        blocked_time=timedelta(0),
        executing_time=timedelta(seconds=9),
        building_duration=timedelta(seconds=10.5),
        result=result,
    )


# ---------------------------------------------------------------------------
# _handle_error
# ---------------------------------------------------------------------------


class TestHandleError:
    def test_auth_failure(self):
        msg = _handle_error(TransportError("HTTP 401", 401), "ctx")
        assert "Authentication failed" in msg
        assert msg.startswith("[ctx]")

    def test_not_found(self):
        assert "Not found (404)" in _handle_error(TransportError("HTTP 404", 404), "ctx")

    def test_connection_failure(self):
        msg = _handle_error(TransportError("Cannot reach Jenkins at x"), "ctx")
        assert msg == "[ctx] Cannot reach Jenkins at x"

    def test_decode_error(self):
        assert "Unexpected response" in _handle_error(DecodeError("bad json"), "ctx")

    def test_metrics_not_found(self):
        msg = _handle_error(MetricsNotFound("12"), "ctx")
        assert "Build 12" in msg
        assert "Metrics plugin" in msg

    def test_parse_and_url_errors(self):
        assert "'x'" in _handle_error(ParseError("x"), "ctx")
        assert "folder name" in _handle_error(URLConstructionError("folder name must not be empty"), "ctx")

    def test_out_of_range_timing(self):
        assert "out of range" in _handle_error(MetricsOutOfRange("5", 2**62), "ctx")

    def test_unexpected(self):
        assert "Unexpected error: boom" in _handle_error(RuntimeError("boom"), "ctx")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestFormatBuilds:
    def test_table(self):
        text = _format_builds([_build(42), _build(43, job="api", result="")])
        assert "2 build(s)" in text
        assert "infra #42" in text
        assert "infra/api #43" in text
        assert "IN_PROGRESS" in text
        assert "1.5s" in text

    def test_folder_filter(self):
        text = _format_builds([_build(1, folder="infra"), _build(2, folder="web")], folder="web")
        assert "web #2" in text
        assert "infra #1" not in text

    def test_empty(self):
        assert _format_builds([]) == "No builds with queue metrics found."
        assert "in folder 'web'" in _format_builds([_build()], folder="web")

    def test_truncated(self):
        builds = [_build(i) for i in range(_MAX_BUILD_ROWS + 5)]
        assert "[Output truncated" in _format_builds(builds)


class TestFormatBuild:
    def test_fields(self):
        text = _format_build(_build(42, job="api"))
        assert "infra/api #42" in text
        assert "Waiting:    1.5s" in text
        assert "Total:      10.5s" in text


class TestFormatStages:
    def test_table_and_slowest(self):
        stages = [
            Stage("Build", "SUCCESS", timedelta(seconds=45)),
            Stage("Test", "FAILED", timedelta(seconds=120)),
        ]
        text = _format_stages(stages, "infra #42")
        assert "Pipeline stages for infra #42" in text
        assert "Slowest stage: Test (120.0s)" in text

    def test_empty(self):
        assert _format_stages([], "infra #42") == "Pipeline has no stages recorded for infra #42."
