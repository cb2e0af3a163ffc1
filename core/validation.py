"""
core/validation.py -- Ordered validator runner shared by every resource service.

A pipeline is a list of Step values. Each step names the field it checks (or
"" for a whole-record step) and a callable that receives the record, may
normalize it in place, and raises on failure:

    def label_required() -> Step:
        def check(role: Role) -> None:
            if not role.label:
                raise Required()
        return Step("label", check)

    run_validators(role, [id_set_to_zero(), label_required(), ...])

Rules applied by run_validators():
  - A field step is skipped once its field already has an error, so the first
    error recorded for a field wins.
  - A field step raising ValidationError has its nested fields merged as
    "<field>.<nested>".
  - A field step raising any other ModelError is recorded under its field.
  - A whole-record step only runs while no field errors have been recorded.
    Whatever it raises aborts the pipeline and propagates unchanged -- it is
    never folded into the field map.
  - Any non-ModelError exception propagates immediately.
  - If field errors were collected, ValidationError is raised at the end.

Layer rule: core/ is the kernel. No imports from api/, auth/ or ratings/.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, NamedTuple

from core.errors import ModelError, ValidationError


class Step(NamedTuple):
    field: str
    check: Callable[[Any], None]


def run_validators(record: Any, steps: Iterable[Step]) -> None:
    """Run steps against record in order. Raises on failure, returns None otherwise."""
    errors: dict[str, ModelError] = {}

    for step in steps:
        if not step.field:
            if not errors:
                step.check(record)
            continue

        if step.field in errors:
            continue

        try:
            step.check(record)
        except ValidationError as exc:
            for nested, err in exc.fields.items():
                errors[f"{step.field}.{nested}"] = err
        except ModelError as exc:
            errors[step.field] = exc

    if errors:
        raise ValidationError(errors)
