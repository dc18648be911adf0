"""Pipeline run-state and result value models.

Key exports:
    Value models: ParamType, ResultValue, ResultRef
    Execution models: TaskRun, TaskRunResult, CustomRun, CustomRunResult
    Run-state models: ExecutionStatus, PipelineTask, ResolvedPipelineTask,
        PipelineRunState
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


# ── Enums ────────────────────────────────────────────────────────────────────


class ParamType(str, Enum):
    """Shapes a result value can take."""

    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


class ExecutionStatus(str, Enum):
    """Lifecycle states of a pipeline task's execution."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


# ── Result values ────────────────────────────────────────────────────────────


class ResultValue(BaseModel):
    """A typed result: a string, an ordered array of strings, or a string map.

    Only the field matching ``type`` may be populated. Arrays are stored as
    tuples and objects as read-only mappings, so a value cannot change once
    built.
    """

    type: ParamType = ParamType.STRING
    string_val: str = ""
    array_val: tuple[str, ...] = ()
    object_val: Mapping[str, str] = Field(default_factory=dict, validate_default=True)

    model_config = {"frozen": True}

    @field_validator("object_val", mode="after")
    @classmethod
    def _freeze_object(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    @model_validator(mode="after")
    def validate_variant(self) -> ResultValue:
        populated = {
            ParamType.STRING: bool(self.string_val),
            ParamType.ARRAY: bool(self.array_val),
            ParamType.OBJECT: bool(self.object_val),
        }
        stray = [t.value for t, is_set in populated.items() if is_set and t != self.type]
        if stray:
            msg = f"ResultValue of type '{self.type.value}' must not populate {', '.join(stray)} value"
            raise ValueError(msg)
        return self

    @classmethod
    def of(cls, value: str | list[str] | tuple[str, ...] | dict[str, str]) -> ResultValue:
        """Build a value from a plain string, list of strings, or string map."""
        if isinstance(value, str):
            return cls(type=ParamType.STRING, string_val=value)
        if isinstance(value, (list, tuple)):
            return cls(type=ParamType.ARRAY, array_val=tuple(value))
        if isinstance(value, dict):
            return cls(type=ParamType.OBJECT, object_val=value)
        raise TypeError(f"Cannot build a ResultValue from {type(value).__name__}")

    def unwrap(self) -> str | list[str] | dict[str, str]:
        """Return the populated variant as a plain Python value."""
        match self.type:
            case ParamType.ARRAY:
                return list(self.array_val)
            case ParamType.OBJECT:
                return dict(self.object_val)
            case _:
                return self.string_val


class ResultRef(BaseModel):
    """A reference to a result produced by another pipeline task.

    ``results_index`` is set for ``tasks.<t>.results.<r>[<i>]`` references and
    ``object_key`` for ``tasks.<t>.results.<r>.<key>`` references.
    """

    pipeline_task: str
    result: str
    results_index: int | None = None
    object_key: str | None = None

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[str, str]:
        """Identity used for deduplication: (producing task, result name)."""
        return (self.pipeline_task, self.result)


# ── Executions ───────────────────────────────────────────────────────────────


class TaskRunResult(BaseModel):
    name: str
    value: ResultValue


class CustomRunResult(BaseModel):
    name: str
    value: str


class TaskRun(BaseModel):
    """A standard task execution. Reports typed results."""

    kind: Literal["taskrun"] = "taskrun"
    name: str
    results: list[TaskRunResult] = Field(default_factory=list)

    def find_result(self, name: str) -> ResultValue | None:
        for result in self.results:
            if result.name == name:
                return result.value
        return None


class CustomRun(BaseModel):
    """An execution managed by an external controller. Reports flat strings."""

    kind: Literal["customrun"] = "customrun"
    name: str
    results: list[CustomRunResult] = Field(default_factory=list)

    def find_result(self, name: str) -> ResultValue | None:
        for result in self.results:
            if result.name == name:
                return ResultValue.of(result.value)
        return None


Execution = Annotated[TaskRun | CustomRun, Field(discriminator="kind")]


# ── Run state ────────────────────────────────────────────────────────────────


class PipelineTask(BaseModel):
    """A task in the pipeline spec, with its result references already extracted.

    ``param_refs`` come from the task's params, ``when_refs`` from its
    ``when`` expressions.
    """

    name: str
    param_refs: list[ResultRef] = Field(default_factory=list)
    when_refs: list[ResultRef] = Field(default_factory=list)

    def result_refs(self) -> list[ResultRef]:
        return [*self.param_refs, *self.when_refs]


class ResolvedPipelineTask(BaseModel):
    """A pipeline task together with the executions created for it so far."""

    pipeline_task: PipelineTask
    status: ExecutionStatus = ExecutionStatus.PENDING
    custom_task: bool = False
    executions: list[Execution] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_executions(self) -> ResolvedPipelineTask:
        expected = CustomRun if self.custom_task else TaskRun
        for execution in self.executions:
            if not isinstance(execution, expected):
                msg = (
                    f"Task '{self.name}': {execution.kind} '{execution.name}' does not "
                    f"match a {'custom' if self.custom_task else 'standard'} task"
                )
                raise ValueError(msg)
        return self

    @property
    def name(self) -> str:
        return self.pipeline_task.name

    @property
    def is_custom_task(self) -> bool:
        return self.custom_task

    def is_successful(self) -> bool:
        return self.status == ExecutionStatus.SUCCEEDED

    def is_failure(self) -> bool:
        return self.status in (ExecutionStatus.FAILED, ExecutionStatus.CANCELLED)

    def is_finished(self) -> bool:
        return self.is_successful() or self.is_failure()


class PipelineRunState(BaseModel):
    """Snapshot of every task in a pipeline run, in pipeline order."""

    tasks: list[ResolvedPipelineTask] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_names(self) -> PipelineRunState:
        seen: set[str] = set()
        for task in self.tasks:
            if task.name in seen:
                msg = f"Duplicate pipeline task name '{task.name}'"
                raise ValueError(msg)
            seen.add(task.name)
        return self

    def to_map(self) -> dict[str, ResolvedPipelineTask]:
        return {task.name: task for task in self.tasks}

    def get(self, name: str) -> ResolvedPipelineTask | None:
        for task in self.tasks:
            if task.name == name:
                return task
        return None

