"""Result reference resolution for pipeline runs.

Resolves ``tasks.<task>.results.<result>`` references declared by downstream
pipeline tasks into concrete values, and expands them into the substitution
targets a templating pass replaces.

Key exports:
    resolve_result_ref, resolve_result_refs — Resolve one or many targets
    ResolvedResultRef, ResolvedResultRefs — Resolution output
    TargetGenerator, ReferenceSyntax — Substitution target expansion
    ResolverConfig, load_config — Configuration
    PipelineRunState, ResolvedPipelineTask, PipelineTask — Run-state input
    ResultRefError and subclasses — Resolution failures
"""

from resultrefs.config import ResolverConfig, load_config
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
    CustomRun,
    CustomRunResult,
    ExecutionStatus,
    ParamType,
    PipelineRunState,
    PipelineTask,
    ResolvedPipelineTask,
    ResultRef,
    ResultValue,
    TaskRun,
    TaskRunResult,
)
from resultrefs.resolution import (
    Replacements,
    ResolvedResultRef,
    ResolvedResultRefs,
    remove_duplicates,
    resolve_result_ref,
    resolve_result_refs,
    validate_array_results_index,
)
from resultrefs.templates import DEFAULT_SYNTAX, ReferenceSyntax, TargetForm, TargetGenerator

__all__ = [
    # Resolution
    "resolve_result_ref",
    "resolve_result_refs",
    "remove_duplicates",
    "validate_array_results_index",
    "ResolvedResultRef",
    "ResolvedResultRefs",
    "Replacements",
    # Substitution targets
    "TargetGenerator",
    "TargetForm",
    "ReferenceSyntax",
    "DEFAULT_SYNTAX",
    # Config
    "ResolverConfig",
    "load_config",
    # Models
    "ParamType",
    "ResultValue",
    "ResultRef",
    "TaskRun",
    "TaskRunResult",
    "CustomRun",
    "CustomRunResult",
    "ExecutionStatus",
    "PipelineTask",
    "ResolvedPipelineTask",
    "PipelineRunState",
    # Errors
    "ResultRefError",
    "UnknownProducerTaskError",
    "ProducerNotFinishedError",
    "AmbiguousProducerError",
    "ResultNotFoundError",
    "IndexOutOfBoundsError",
    "ConflictingResultValuesError",
]
