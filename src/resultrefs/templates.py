"""Substitution targets for resolved result references.

A templating pass rewrites ``$(tasks.<task>.results.<result>)`` style
expressions. Authors may spell the same reference several ways, so every
resolved reference expands into one target string per alias form:

    - Dot form:            ``tasks.build.results.image-url``
    - Double-quoted form:  ``tasks.build.results["image-url"]``
    - Single-quoted form:  ``tasks.build.results['image-url']``

Array elements append ``[<i>]`` to each form. Object keys append ``.<key>``
to the dot form and ``[<key>]`` to the bracket forms.

The forms live in a table on :class:`ReferenceSyntax` so new spellings can be
added from configuration without touching the generator.
"""

from __future__ import annotations

from collections.abc import Mapping
from string import Formatter
from types import MappingProxyType

from pydantic import BaseModel, Field, field_validator, model_validator

from resultrefs.models import ResultRef

_BASE_FIELDS = ("task_part", "task", "result_part", "result")


def _fields(template: str) -> set[str]:
    """Names of the replacement fields in a ``str.format`` template."""
    return {name for _, name, _, _ in Formatter().parse(template) if name is not None}


def _check_fields(label: str, template: str, required: tuple[str, ...]) -> None:
    fields = _fields(template)
    unknown = sorted(fields - set(required))
    if unknown:
        names = ", ".join("{%s}" % name for name in unknown)
        msg = f"{label} '{template}' has unknown placeholders: {names}"
        raise ValueError(msg)
    missing = [name for name in required if name not in fields]
    if missing:
        names = ", ".join("{%s}" % name for name in missing)
        msg = f"{label} '{template}' is missing placeholders: {names}"
        raise ValueError(msg)


class TargetForm(BaseModel):
    """One way of spelling a result reference.

    ``base`` is formatted with ``task_part``, ``task``, ``result_part`` and
    ``result``; the suffixes with ``index`` and ``key`` respectively. No other
    placeholders are allowed.
    """

    base: str
    index_suffix: str = "[{index}]"
    key_suffix: str = "[{key}]"

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_placeholders(self) -> TargetForm:
        _check_fields("Target form", self.base, _BASE_FIELDS)
        _check_fields("Index suffix", self.index_suffix, ("index",))
        _check_fields("Key suffix", self.key_suffix, ("key",))
        return self


def _default_forms() -> dict[str, TargetForm]:
    return {
        "dot": TargetForm(
            base="{task_part}.{task}.{result_part}.{result}",
            key_suffix=".{key}",
        ),
        "double_quoted": TargetForm(base='{task_part}.{task}.{result_part}["{result}"]'),
        "single_quoted": TargetForm(base="{task_part}.{task}.{result_part}['{result}']"),
    }


class ReferenceSyntax(BaseModel):
    """The fixed fragments of a result reference and its alias forms."""

    task_part: str = "tasks"
    result_part: str = "results"
    forms: Mapping[str, TargetForm] = Field(
        default_factory=_default_forms, validate_default=True
    )

    model_config = {"frozen": True}

    @field_validator("forms", mode="after")
    @classmethod
    def _freeze_forms(cls, v: Mapping[str, TargetForm]) -> Mapping[str, TargetForm]:
        return MappingProxyType(dict(v))

    @model_validator(mode="after")
    def validate_forms(self) -> ReferenceSyntax:
        if not self.forms:
            msg = "ReferenceSyntax requires at least one target form"
            raise ValueError(msg)
        return self


DEFAULT_SYNTAX = ReferenceSyntax()


class TargetGenerator:
    """Expands result references into every equivalent substitution target.

    Usage::

        generator = TargetGenerator()
        generator.targets(ResultRef(pipeline_task="build", result="image-url"))
        # → ["tasks.build.results.image-url",
        #    'tasks.build.results["image-url"]',
        #    "tasks.build.results['image-url']"]
    """

    def __init__(self, syntax: ReferenceSyntax | None = None):
        self._syntax = syntax or DEFAULT_SYNTAX

    @property
    def syntax(self) -> ReferenceSyntax:
        return self._syntax

    def targets(self, ref: ResultRef) -> list[str]:
        """Targets naming the whole result."""
        return [self._base(form, ref) for form in self._syntax.forms.values()]

    def array_index_targets(self, ref: ResultRef, index: int) -> list[str]:
        """Targets naming element ``index`` of an array result."""
        return [
            self._base(form, ref) + form.index_suffix.format(index=index)
            for form in self._syntax.forms.values()
        ]

    def object_key_targets(self, ref: ResultRef, key: str) -> list[str]:
        """Targets naming ``key`` of an object result."""
        return [
            self._base(form, ref) + form.key_suffix.format(key=key)
            for form in self._syntax.forms.values()
        ]

    def _base(self, form: TargetForm, ref: ResultRef) -> str:
        return form.base.format(
            task_part=self._syntax.task_part,
            task=ref.pipeline_task,
            result_part=self._syntax.result_part,
            result=ref.result,
        )
