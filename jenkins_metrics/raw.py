"""
Raw Jenkins response shapes.

These mirror the JSON selected by the tree queries field for field and are
never handed to callers.  Validation is lenient about absence and strict
about type: a missing key or ``null`` becomes the zero value ("", 0, empty
list), while a value of the wrong JSON type fails validation.

Build actions are a heterogeneous list.  Each one is kept as its ``_class``
plus an opaque payload; only the TimeInQueueAction payload is ever
interpreted.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
)

from jenkins_metrics.errors import MetricsNotFound

# https://github.com/jenkinsci/metrics-plugin/blob/master/src/main/java/jenkins/metrics/impl/TimeInQueueAction.java
TIME_IN_QUEUE_ACTION = "jenkins.metrics.impl.TimeInQueueAction"

TIMING_FIELDS = (
    "buildableTimeMillis",
    "waitingTimeMillis",
    "blockedTimeMillis",
    "executingTimeMillis",
    "buildingDurationMillis",
)


class RawModel(BaseModel):
    """Frozen, camelCase-aliased model turning JSON nulls into zero values."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def null_to_zero(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


class TimingMetricsRaw(RawModel):
    buildable_time_millis: StrictInt = Field(0, alias="buildableTimeMillis")
    waiting_time_millis: StrictInt = Field(0, alias="waitingTimeMillis")
    blocked_time_millis: StrictInt = Field(0, alias="blockedTimeMillis")
    executing_time_millis: StrictInt = Field(0, alias="executingTimeMillis")
    building_duration_millis: StrictInt = Field(0, alias="buildingDurationMillis")


class ActionRaw(RawModel):
    """One entry of a build's actions list, tagged by its ``_class``.

    Everything but ``_class`` is kept unvalidated in ``payload``.
    """

    model_config = ConfigDict(extra="allow")

    class_name: StrictStr = Field("", alias="_class")

    @property
    def payload(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def timing_metrics(self) -> TimingMetricsRaw:
        """Interpret the payload as a TimeInQueueAction."""
        if self.class_name != TIME_IN_QUEUE_ACTION:
            raise MetricsNotFound()
        return TimingMetricsRaw.model_validate(self.payload)


class BuildRaw(RawModel):
    id: StrictStr = ""
    result: StrictStr = ""
    actions: list[ActionRaw] = Field(default_factory=list)

    @field_validator("actions")
    @classmethod
    def timing_payload_valid(cls, actions: list[ActionRaw]) -> list[ActionRaw]:
        # a mistyped timing field fails the whole response
        for action in actions:
            if action.class_name == TIME_IN_QUEUE_ACTION:
                action.timing_metrics()
        return actions


class JobRaw(RawModel):
    name: StrictStr = ""
    builds: list[BuildRaw] = Field(default_factory=list)
    jobs: list[JobRaw] = Field(default_factory=list)


class BuildsResponseRaw(RawModel):
    """Top level of ``/api/json?tree=jobs[...]``."""

    jobs: list[JobRaw] = Field(default_factory=list)


class StageRaw(RawModel):
    name: StrictStr = ""
    status: StrictStr = ""
    duration_millis: StrictInt = Field(0, alias="durationMillis")


class WorkflowRunRaw(RawModel):
    """Top level of a build's ``wfapi/describe`` response."""

    stages: list[StageRaw] = Field(default_factory=list)
