"""Tests for stage mapping and per-build endpoint construction."""

from __future__ import annotations

from datetime import timedelta

import pytest

from jenkins_metrics.errors import DecodeError, URLConstructionError
from jenkins_metrics.raw import WorkflowRunRaw
from jenkins_metrics.stages import Stage, stages_from_raw
from jenkins_metrics.urls import build_api_url, job_url, workflow_run_url

SERVER = "https://jenkins.example.com"


# ---------------------------------------------------------------------------
# stages_from_raw
# ---------------------------------------------------------------------------


class TestStagesFromRaw:
    def test_order_and_durations(self):
        run = WorkflowRunRaw.model_validate({"stages": [
            {"name": "Checkout", "status": "SUCCESS", "durationMillis": 1200},
            {"name": "Build", "status": "SUCCESS", "durationMillis": 45000},
            {"name": "Test", "status": "FAILED", "durationMillis": 120001},
            {"name": "Deploy", "status": "NOT_EXECUTED", "durationMillis": 0},
        ]})
        assert stages_from_raw(run) == [
            Stage("Checkout", "SUCCESS", timedelta(seconds=1.2)),
            Stage("Build", "SUCCESS", timedelta(seconds=45)),
            Stage("Test", "FAILED", timedelta(milliseconds=120001)),
            Stage("Deploy", "NOT_EXECUTED", timedelta(0)),
        ]

    def test_duplicate_names_not_collapsed(self):
        run = WorkflowRunRaw.model_validate({"stages": [
            {"name": "Retry", "status": "FAILED", "durationMillis": 1},
            {"name": "Retry", "status": "SUCCESS", "durationMillis": 2},
        ]})
        assert len(stages_from_raw(run)) == 2

    def test_empty(self):
        assert stages_from_raw(WorkflowRunRaw()) == []

    def test_out_of_range_duration_raises(self):
        run = WorkflowRunRaw.model_validate({"stages": [
            {"name": "Soak", "status": "SUCCESS", "durationMillis": 2**62},
        ]})
        with pytest.raises(DecodeError, match="Soak"):
            stages_from_raw(run)


# ---------------------------------------------------------------------------
# URL construction
# ---------------------------------------------------------------------------


class TestWorkflowRunUrl:
    def test_folder_only(self):
        assert workflow_run_url(SERVER, "infra", "", "", 42) == (
            f"{SERVER}/job/infra/42/wfapi/describe"
        )

    def test_folder_and_job(self):
        assert workflow_run_url(SERVER, "infra", "api", "", 42) == (
            f"{SERVER}/job/infra/job/api/42/wfapi/describe"
        )

    def test_folder_job_branch(self):
        assert workflow_run_url(SERVER, "infra", "api", "main", 42) == (
            f"{SERVER}/job/infra/job/api/job/main/42/wfapi/describe"
        )

    def test_branch_ignored_without_job(self):
        assert workflow_run_url(SERVER, "infra", "", "main", 42) == (
            f"{SERVER}/job/infra/42/wfapi/describe"
        )

    def test_trailing_slash_on_server(self):
        assert workflow_run_url(SERVER + "/", "infra", "", "", 1) == (
            f"{SERVER}/job/infra/1/wfapi/describe"
        )

    def test_segments_encoded(self):
        url = workflow_run_url(SERVER, "my folder", "api", "feature/x#1", 7)
        assert url == f"{SERVER}/job/my%20folder/job/api/job/feature%2Fx%231/7/wfapi/describe"

    @pytest.mark.parametrize("folder, job, branch", [
        ("", "api", "main"),
        ("..", "", ""),
        ("infra", ".", ""),
        ("infra", "api", "bad\nname"),
    ])
    def test_invalid_segments(self, folder, job, branch):
        with pytest.raises(URLConstructionError):
            workflow_run_url(SERVER, folder, job, branch, 42)

    @pytest.mark.parametrize("server", ["", "jenkins.example.com", "ftp://jenkins"])
    def test_invalid_server_url(self, server):
        with pytest.raises(URLConstructionError):
            workflow_run_url(server, "infra", "", "", 42)

    def test_negative_build_id(self):
        with pytest.raises(URLConstructionError):
            workflow_run_url(SERVER, "infra", "", "", -1)


class TestJobUrl:
    def test_stops_at_first_empty_name(self):
        assert job_url(SERVER, "a", "", "c") == f"{SERVER}/job/a"

    def test_build_api_url_with_tree(self):
        url = build_api_url(SERVER, 9, "a", "b", "c", "d", tree="id,result")
        assert url == f"{SERVER}/job/a/job/b/job/c/job/d/9/api/json?tree=id,result"
