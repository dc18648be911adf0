"""Errors raised while resolving result references.

Every error names the producing task (``pipeline_task``) so callers can
attribute the failure. ``target_task`` is filled in by the resolver with the
downstream task whose references were being resolved.
"""

from __future__ import annotations


class ResultRefError(Exception):
    """Base class for all result reference resolution errors."""

    #: Whether re-resolving later, after the run state changes, may succeed.
    transient = False

    def __init__(self, message: str, *, pipeline_task: str, target_task: str | None = None):
        self.pipeline_task = pipeline_task
        self.target_task = target_task
        super().__init__(message)


class UnknownProducerTaskError(ResultRefError):
    """The referenced task is not part of the pipeline run."""

    def __init__(self, pipeline_task: str):
        super().__init__(
            f"could not find task {pipeline_task!r} referenced by result",
            pipeline_task=pipeline_task,
        )


class ProducerNotFinishedError(ResultRefError):
    """The referenced task has neither succeeded nor failed yet."""

    transient = True

    def __init__(self, pipeline_task: str):
        super().__init__(
            f"task {pipeline_task!r} referenced by result was not finished",
            pipeline_task=pipeline_task,
        )


class AmbiguousProducerError(ResultRefError):
    """The referenced task does not have exactly one execution.

    Matrixed tasks fan out into several executions and cannot produce results.
    """

    def __init__(self, pipeline_task: str, count: int):
        self.count = count
        super().__init__(
            f"referenced task {pipeline_task!r} can only have length of 1 since a matrixed "
            f"task does not support producing results, but was length {count}",
            pipeline_task=pipeline_task,
        )


class ResultNotFoundError(ResultRefError):
    """The referenced task finished without reporting the named result."""

    def __init__(self, pipeline_task: str, result: str):
        self.result = result
        super().__init__(
            f"could not find result with name {result} for task {pipeline_task}",
            pipeline_task=pipeline_task,
        )


class IndexOutOfBoundsError(ResultRefError):
    """An array result was indexed past its end."""

    def __init__(self, pipeline_task: str, result: str, index: int, length: int):
        self.result = result
        self.index = index
        self.length = length
        super().__init__(
            f"array result index {index} for task {pipeline_task} result {result} "
            f"is out of bound of size {length}",
            pipeline_task=pipeline_task,
        )


class ConflictingResultValuesError(ResultRefError):
    """Two references to the same result resolved to different values."""

    def __init__(self, pipeline_task: str, result: str):
        self.result = result
        super().__init__(
            f"result {result} of task {pipeline_task} resolved to conflicting values",
            pipeline_task=pipeline_task,
        )
