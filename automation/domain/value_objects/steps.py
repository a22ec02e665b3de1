"""Typed workflow steps and trigger configuration.

Workflow definitions are stored as JSON (``{"type": ..., "config": {...}}``
with the camelCase keys the authoring UI writes). ``parse_step`` turns one
stored step into a frozen value object carrying its own typed config, and
``step_to_dict`` writes it back. ``strict`` parsing is used when a workflow
is saved; the engine parses leniently at execution time so that operators
and delay units it does not know fall through to the evaluator defaults.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from automation.domain.enums import ConditionOperator, DelayUnit, StepType
from automation.domain.exceptions import ValidationException

_WEBHOOK_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

# Longest DELAY a step may declare (ten years).
MAX_DELAY_MILLISECONDS = 3650 * DelayUnit.DAYS.milliseconds


@dataclass(frozen=True)
class Condition:
    """Single predicate: compare data[field] with value using operator.

    operator is kept as the raw string so unknown operators stored by older
    clients still reach the evaluator (which decides fail-open or fail-closed).
    """

    field: str
    operator: str
    value: Any = None


@dataclass(frozen=True)
class TriggerConfig:
    """Trigger filter (implicit AND of conditions) and re-enrollment policy."""

    conditions: tuple[Condition, ...] = ()
    allow_re_enrollment: bool = False
    extras: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extras)
        if self.conditions:
            data["conditions"] = [
                {"field": c.field, "operator": c.operator, "value": c.value}
                for c in self.conditions
            ]
        if self.allow_re_enrollment:
            data["allowReEnrollment"] = True
        return data


@dataclass(frozen=True)
class SendEmailStep:
    type: ClassVar[StepType] = StepType.SEND_EMAIL
    template_id: str
    subject: str | None = None


@dataclass(frozen=True)
class SendSmsStep:
    type: ClassVar[StepType] = StepType.SEND_SMS
    message: str


@dataclass(frozen=True)
class AddTagStep:
    type: ClassVar[StepType] = StepType.ADD_TAG
    tags: tuple[str, ...]


@dataclass(frozen=True)
class RemoveTagStep:
    type: ClassVar[StepType] = StepType.REMOVE_TAG
    tags: tuple[str, ...]


@dataclass(frozen=True)
class UpdateFieldStep:
    type: ClassVar[StepType] = StepType.UPDATE_FIELD
    field: str
    value: Any = None


@dataclass(frozen=True)
class AddToSegmentStep:
    type: ClassVar[StepType] = StepType.ADD_TO_SEGMENT
    segment_id: str


@dataclass(frozen=True)
class RemoveFromSegmentStep:
    type: ClassVar[StepType] = StepType.REMOVE_FROM_SEGMENT
    segment_id: str


@dataclass(frozen=True)
class WebhookStep:
    type: ClassVar[StepType] = StepType.WEBHOOK
    url: str
    method: str = "POST"
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Any = None


@dataclass(frozen=True)
class InternalNotificationStep:
    type: ClassVar[StepType] = StepType.INTERNAL_NOTIFICATION
    message: str


@dataclass(frozen=True)
class DelayStep:
    """Wait before the next step. unit None or unknown means minutes."""

    type: ClassVar[StepType] = StepType.DELAY
    value: int | float
    unit: str | None = None


@dataclass(frozen=True)
class ConditionStep:
    """Branch to true_step or false_step (any index; out of range completes)."""

    type: ClassVar[StepType] = StepType.CONDITION
    condition: Condition
    true_step: int
    false_step: int


@dataclass(frozen=True)
class ExitStep:
    type: ClassVar[StepType] = StepType.EXIT


Step = (
    SendEmailStep
    | SendSmsStep
    | AddTagStep
    | RemoveTagStep
    | UpdateFieldStep
    | AddToSegmentStep
    | RemoveFromSegmentStep
    | WebhookStep
    | InternalNotificationStep
    | DelayStep
    | ConditionStep
    | ExitStep
)


def _require_str(config: Mapping[str, Any], key: str, path: str) -> str:
    value = config.get(key)
    if isinstance(value, bool) or not isinstance(value, (str, int)) or value == "":
        raise ValidationException(f"{key} is required", field=f"{path}.{key}")
    return str(value)


def _require_int(config: Mapping[str, Any], key: str, path: str) -> int:
    value = config.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationException(f"{key} must be an integer step index", field=f"{path}.{key}")
    return value


def _tags(config: Mapping[str, Any], path: str) -> tuple[str, ...]:
    raw = config.get("tags")
    tags = raw if isinstance(raw, list) else [raw]
    if not raw or not all(isinstance(t, str) and t for t in tags):
        raise ValidationException(
            "tags must be a non-empty string or list of strings", field=f"{path}.tags"
        )
    return tuple(tags)


def parse_condition(
    raw: Mapping[str, Any], path: str, *, strict: bool = True
) -> Condition:
    """Parse a {field, operator, value} predicate."""
    if not isinstance(raw, Mapping):
        raise ValidationException("condition must be an object", field=path)
    field_name = raw.get("field")
    if not isinstance(field_name, str) or not field_name:
        raise ValidationException("field is required", field=f"{path}.field")
    operator = raw.get("operator")
    if not isinstance(operator, str) or not operator:
        raise ValidationException("operator is required", field=f"{path}.operator")
    if strict and operator not in ConditionOperator.values():
        raise ValidationException(
            f"Unknown operator: {operator}", field=f"{path}.operator"
        )
    value = raw.get("value")
    if strict and operator == ConditionOperator.IN.value and not isinstance(value, list):
        raise ValidationException(
            "value must be a list for operator 'in'", field=f"{path}.value"
        )
    return Condition(field=field_name, operator=operator, value=value)


def parse_trigger_config(
    raw: Mapping[str, Any] | None, *, strict: bool = True
) -> TriggerConfig:
    """Parse triggerConfig; keys other than conditions/allowReEnrollment are kept as extras."""
    if not raw:
        return TriggerConfig()
    if not isinstance(raw, Mapping):
        raise ValidationException("triggerConfig must be an object", field="triggerConfig")
    raw_conditions = raw.get("conditions") or []
    if not isinstance(raw_conditions, list):
        raise ValidationException(
            "conditions must be a list", field="triggerConfig.conditions"
        )
    conditions = tuple(
        parse_condition(c, f"triggerConfig.conditions[{i}]", strict=strict)
        for i, c in enumerate(raw_conditions)
    )
    extras = {
        k: v for k, v in raw.items() if k not in ("conditions", "allowReEnrollment")
    }
    return TriggerConfig(
        conditions=conditions,
        allow_re_enrollment=raw.get("allowReEnrollment") is True,
        extras=extras,
    )


def parse_step(
    raw: Mapping[str, Any], index: int = 0, *, strict: bool = True
) -> Step:
    """Parse one stored step into its typed value object.

    Raises:
        ValidationException: unknown type or missing/invalid config (field
            names the offending path, e.g. ``steps[2].config.templateId``).
    """
    path = f"steps[{index}]"
    if not isinstance(raw, Mapping):
        raise ValidationException("step must be an object", field=path)
    type_value = raw.get("type")
    try:
        step_type = StepType(type_value)
    except ValueError:
        raise ValidationException(
            f"Unknown step type: {type_value}", field=f"{path}.type"
        ) from None
    config = raw.get("config") or {}
    if not isinstance(config, Mapping):
        raise ValidationException("config must be an object", field=f"{path}.config")
    cpath = f"{path}.config"

    if step_type is StepType.SEND_EMAIL:
        subject = config.get("subject")
        return SendEmailStep(
            template_id=_require_str(config, "templateId", cpath),
            subject=str(subject) if subject is not None else None,
        )
    if step_type is StepType.SEND_SMS:
        return SendSmsStep(message=_require_str(config, "message", cpath))
    if step_type is StepType.ADD_TAG:
        return AddTagStep(tags=_tags(config, cpath))
    if step_type is StepType.REMOVE_TAG:
        return RemoveTagStep(tags=_tags(config, cpath))
    if step_type is StepType.UPDATE_FIELD:
        return UpdateFieldStep(
            field=_require_str(config, "field", cpath), value=config.get("value")
        )
    if step_type is StepType.ADD_TO_SEGMENT:
        return AddToSegmentStep(segment_id=_require_str(config, "segmentId", cpath))
    if step_type is StepType.REMOVE_FROM_SEGMENT:
        return RemoveFromSegmentStep(
            segment_id=_require_str(config, "segmentId", cpath)
        )
    if step_type is StepType.WEBHOOK:
        url = _require_str(config, "url", cpath)
        if not url.startswith(("http://", "https://")):
            raise ValidationException("url must be http(s)", field=f"{cpath}.url")
        method = str(config.get("method") or "POST").upper()
        if method not in _WEBHOOK_METHODS:
            raise ValidationException(
                f"Unsupported webhook method: {method}", field=f"{cpath}.method"
            )
        headers = config.get("headers") or {}
        if not isinstance(headers, Mapping):
            raise ValidationException("headers must be an object", field=f"{cpath}.headers")
        return WebhookStep(
            url=url,
            method=method,
            headers={str(k): str(v) for k, v in headers.items()},
            data=config.get("data"),
        )
    if step_type is StepType.INTERNAL_NOTIFICATION:
        return InternalNotificationStep(message=_require_str(config, "message", cpath))
    if step_type is StepType.DELAY:
        value = config.get("value")
        if (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or not math.isfinite(value)
            or value < 0
        ):
            raise ValidationException(
                "value must be a non-negative number", field=f"{cpath}.value"
            )
        unit = config.get("unit")
        if strict and unit is not None and unit not in DelayUnit.values():
            raise ValidationException(f"Unknown delay unit: {unit}", field=f"{cpath}.unit")
        unit_ms = (
            DelayUnit(unit).milliseconds
            if unit in DelayUnit.values()
            else DelayUnit.MINUTES.milliseconds
        )
        if value * unit_ms > MAX_DELAY_MILLISECONDS:
            raise ValidationException(
                "delay must not exceed 3650 days", field=f"{cpath}.value"
            )
        return DelayStep(value=value, unit=unit if isinstance(unit, str) else None)
    if step_type is StepType.CONDITION:
        return ConditionStep(
            condition=parse_condition(config, cpath, strict=strict),
            true_step=_require_int(config, "trueStep", cpath),
            false_step=_require_int(config, "falseStep", cpath),
        )
    return ExitStep()


def step_to_dict(step: Step) -> dict[str, Any]:
    """Serialize a typed step back to the stored JSON shape."""
    config: dict[str, Any]
    match step:
        case SendEmailStep():
            config = {"templateId": step.template_id}
            if step.subject is not None:
                config["subject"] = step.subject
        case SendSmsStep() | InternalNotificationStep():
            config = {"message": step.message}
        case AddTagStep() | RemoveTagStep():
            config = {"tags": list(step.tags)}
        case UpdateFieldStep():
            config = {"field": step.field, "value": step.value}
        case AddToSegmentStep() | RemoveFromSegmentStep():
            config = {"segmentId": step.segment_id}
        case WebhookStep():
            config = {"url": step.url, "method": step.method, "headers": dict(step.headers)}
            if step.data is not None:
                config["data"] = step.data
        case DelayStep():
            config = {"value": step.value}
            if step.unit is not None:
                config["unit"] = step.unit
        case ConditionStep():
            config = {
                "field": step.condition.field,
                "operator": step.condition.operator,
                "value": step.condition.value,
                "trueStep": step.true_step,
                "falseStep": step.false_step,
            }
        case ExitStep():
            return {"type": step.type.value}
    return {"type": step.type.value, "config": config}


def validate_steps(raw_steps: list[Mapping[str, Any]]) -> list[Step]:
    """Strictly parse a whole step list; CONDITION targets must be in [0, len(steps)].

    An index equal to len(steps) is allowed and means "complete the enrollment".
    """
    if not isinstance(raw_steps, list):
        raise ValidationException("steps must be a list", field="steps")
    steps = [parse_step(raw, i, strict=True) for i, raw in enumerate(raw_steps)]
    upper = len(steps)
    for i, step in enumerate(steps):
        if isinstance(step, ConditionStep):
            for key, target in (("trueStep", step.true_step), ("falseStep", step.false_step)):
                if not 0 <= target <= upper:
                    raise ValidationException(
                        f"{key} {target} is outside the workflow (0..{upper})",
                        field=f"steps[{i}].config.{key}",
                    )
    return steps
