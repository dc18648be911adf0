"""Result reference resolution for pipeline tasks.

Given a snapshot of a pipeline run and one or more downstream tasks, looks up
every result the tasks reference, checks that each producer finished with
exactly one execution, and returns the values as a :class:`ResolvedResultRefs`
collection. The collection is deduplicated on (producing task, result name)
and sorted on that pair, so resolving an unchanged run state always yields
the same output.

Resolution is all-or-nothing: the first invalid reference raises a
:class:`~resultrefs.errors.ResultRefError` and nothing is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import NamedTuple, overload

from pydantic import BaseModel, model_validator

from resultrefs.config import ResolverConfig
from resultrefs.errors import (
    AmbiguousProducerError,
    ConflictingResultValuesError,
    IndexOutOfBoundsError,
    ProducerNotFinishedError,
    ResultNotFoundError,
    ResultRefError,
    UnknownProducerTaskError,
)
from resultrefs.models import (
    ParamType,
    PipelineRunState,
    ResolvedPipelineTask,
    ResultRef,
    ResultValue,
)
from resultrefs.templates import ReferenceSyntax, TargetGenerator

logger = logging.getLogger(__name__)


# ── Resolved references ──────────────────────────────────────────────────────


class ResolvedResultRef(BaseModel):
    """A result reference paired with its value and the execution that produced it.

    Exactly one of ``from_task_run`` and ``from_run`` is set.
    """

    value: ResultValue
    result_reference: ResultRef
    from_task_run: str | None = None
    from_run: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_origin(self) -> ResolvedResultRef:
        if (self.from_task_run is None) == (self.from_run is None):
            msg = (
                f"Result '{self.result_reference.result}' of task "
                f"'{self.result_reference.pipeline_task}' must come from exactly one "
                "of a task run or a custom run"
            )
            raise ValueError(msg)
        return self

    @property
    def key(self) -> tuple[str, str]:
        return self.result_reference.key

    def get_replace_target(self, syntax: ReferenceSyntax | None = None) -> list[str]:
        return TargetGenerator(syntax).targets(self.result_reference)

    def get_replace_target_from_array_index(
        self, index: int, syntax: ReferenceSyntax | None = None
    ) -> list[str]:
        return TargetGenerator(syntax).array_index_targets(self.result_reference, index)

    def get_replace_target_from_object_key(
        self, key: str, syntax: ReferenceSyntax | None = None
    ) -> list[str]:
        return TargetGenerator(syntax).object_key_targets(self.result_reference, key)


class Replacements(NamedTuple):
    """Replacement maps for a templating pass, keyed by substitution target."""

    strings: dict[str, str]
    arrays: dict[str, list[str]]
    objects: dict[str, dict[str, str]]


class ResolvedResultRefs(Sequence[ResolvedResultRef]):
    """An immutable, ordered collection of resolved references.

    The replacement accessors expand each reference with the collection's
    :class:`ReferenceSyntax`.
    """

    def __init__(
        self,
        refs: Iterable[ResolvedResultRef] = (),
        *,
        syntax: ReferenceSyntax | None = None,
    ):
        self._refs = tuple(refs)
        self._generator = TargetGenerator(syntax)

    @overload
    def __getitem__(self, index: int) -> ResolvedResultRef: ...

    @overload
    def __getitem__(self, index: slice) -> ResolvedResultRefs: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ResolvedResultRefs(self._refs[index], syntax=self._generator.syntax)
        return self._refs[index]

    def __len__(self) -> int:
        return len(self._refs)

    def __iter__(self) -> Iterator[ResolvedResultRef]:
        return iter(self._refs)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ResolvedResultRefs):
            return self._refs == other._refs
        if isinstance(other, (list, tuple)):
            return self._refs == tuple(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ResolvedResultRefs({list(self._refs)!r})"

    def get_string_replacements(self) -> dict[str, str]:
        """Targets that substitute to a single string.

        String results map their whole-result targets. Array results map one
        set of targets per element, and object results one set per key.
        """
        replacements: dict[str, str] = {}
        for r in self._refs:
            ref = r.result_reference
            match r.value.type:
                case ParamType.ARRAY:
                    for i, element in enumerate(r.value.array_val):
                        for target in self._generator.array_index_targets(ref, i):
                            replacements[target] = element
                case ParamType.OBJECT:
                    for key, element in r.value.object_val.items():
                        for target in self._generator.object_key_targets(ref, key):
                            replacements[target] = element
                case _:
                    for target in self._generator.targets(ref):
                        replacements[target] = r.value.string_val
        return replacements

    def get_array_replacements(self) -> dict[str, list[str]]:
        """Whole-array targets mapped to a copy of the array."""
        replacements: dict[str, list[str]] = {}
        for r in self._refs:
            if r.value.type == ParamType.ARRAY:
                for target in self._generator.targets(r.result_reference):
                    replacements[target] = list(r.value.array_val)
        return replacements

    def get_object_replacements(self) -> dict[str, dict[str, str]]:
        """Whole-object targets mapped to a copy of the object."""
        replacements: dict[str, dict[str, str]] = {}
        for r in self._refs:
            if r.value.type == ParamType.OBJECT:
                for target in self._generator.targets(r.result_reference):
                    replacements[target] = dict(r.value.object_val)
        return replacements

    def replacements(self) -> Replacements:
        return Replacements(
            strings=self.get_string_replacements(),
            arrays=self.get_array_replacements(),
            objects=self.get_object_replacements(),
        )


# ── Resolution ───────────────────────────────────────────────────────────────


def resolve_result_ref(
    state: PipelineRunState,
    target: ResolvedPipelineTask,
    *,
    config: ResolverConfig | None = None,
) -> ResolvedResultRefs:
    """Resolve every result reference declared by ``target``.

    Raises:
        ResultRefError: If any reference cannot be resolved. ``target_task``
            is set to ``target``'s name.
    """
    return resolve_result_refs(state, [target], config=config)


def resolve_result_refs(
    state: PipelineRunState,
    targets: Iterable[ResolvedPipelineTask],
    *,
    config: ResolverConfig | None = None,
) -> ResolvedResultRefs:
    """Resolve the result references of several targets into one collection.

    Targets are resolved in order and the first failing target aborts the
    batch.

    Raises:
        ResultRefError: For the first invalid reference. ``target_task``
            names the target it was declared on.
    """
    config = config or ResolverConfig()
    producers = state.to_map()

    all_refs: list[ResolvedResultRef] = []
    for target in targets:
        try:
            all_refs.extend(_convert_to_result_refs(producers, target))
        except ResultRefError as exc:
            exc.target_task = target.name
            raise

    validate_array_results_index(all_refs)
    deduped = remove_duplicates(all_refs, strict=config.strict_duplicates)
    return ResolvedResultRefs(deduped, syntax=config.syntax)


def validate_array_results_index(refs: Iterable[ResolvedResultRef]) -> None:
    """Check that every indexed array reference is within the array's bounds.

    References without an index, or to non-array values, are not checked.

    Raises:
        IndexOutOfBoundsError: For the first reference out of bounds.
    """
    for r in refs:
        ref = r.result_reference
        if r.value.type != ParamType.ARRAY or ref.results_index is None:
            continue
        length = len(r.value.array_val)
        if not 0 <= ref.results_index < length:
            raise IndexOutOfBoundsError(ref.pipeline_task, ref.result, ref.results_index, length)


def remove_duplicates(
    refs: Iterable[ResolvedResultRef], *, strict: bool = False
) -> list[ResolvedResultRef]:
    """Keep one reference per (producing task, result name), sorted on that pair.

    The last duplicate wins. With ``strict``, duplicates whose values differ
    raise :class:`ConflictingResultValuesError` instead.
    """
    by_key: dict[tuple[str, str], ResolvedResultRef] = {}
    for r in refs:
        previous = by_key.get(r.key)
        if strict and previous is not None and previous.value != r.value:
            raise ConflictingResultValuesError(*r.key)
        by_key[r.key] = r

    deduped = [by_key[key] for key in sorted(by_key)]
    logger.debug("Collapsed result references to %d unique entries", len(deduped))
    return deduped


def _convert_to_result_refs(
    producers: dict[str, ResolvedPipelineTask], target: ResolvedPipelineTask
) -> list[ResolvedResultRef]:
    return [_resolve_one(producers, ref) for ref in target.pipeline_task.result_refs()]


def _resolve_one(
    producers: dict[str, ResolvedPipelineTask], ref: ResultRef
) -> ResolvedResultRef:
    producer = producers.get(ref.pipeline_task)
    if producer is None:
        raise UnknownProducerTaskError(ref.pipeline_task)
    if not producer.is_finished():
        raise ProducerNotFinishedError(ref.pipeline_task)

    # Matrixed tasks fan out into several executions and cannot produce results
    if len(producer.executions) != 1:
        raise AmbiguousProducerError(ref.pipeline_task, len(producer.executions))
    execution = producer.executions[0]

    value = execution.find_result(ref.result)
    if value is None:
        raise ResultNotFoundError(ref.pipeline_task, ref.result)

    logger.debug(
        "Resolved result %s of task %s from %s %s",
        ref.result,
        ref.pipeline_task,
        execution.kind,
        execution.name,
    )
    if producer.is_custom_task:
        return ResolvedResultRef(value=value, result_reference=ref, from_run=execution.name)
    return ResolvedResultRef(value=value, result_reference=ref, from_task_run=execution.name)
