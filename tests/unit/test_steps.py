"""Unit tests for step and trigger config parsing."""

import pytest

from automation.domain.exceptions import ValidationException
from automation.domain.value_objects.steps import (
    AddTagStep,
    ConditionStep,
    DelayStep,
    ExitStep,
    SendEmailStep,
    WebhookStep,
    parse_step,
    parse_trigger_config,
    step_to_dict,
    validate_steps,
)


class TestParseStep:
    def test_send_email(self) -> None:
        step = parse_step({"type": "send_email", "config": {"templateId": "welcome"}})
        assert step == SendEmailStep(template_id="welcome")

    def test_missing_template_id_names_field(self) -> None:
        with pytest.raises(ValidationException) as exc:
            parse_step({"type": "send_email", "config": {}}, 2)
        assert exc.value.details["field"] == "steps[2].config.templateId"

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(ValidationException, match="Unknown step type"):
            parse_step({"type": "send_fax", "config": {}})

    def test_single_tag_is_normalized_to_tuple(self) -> None:
        step = parse_step({"type": "add_tag", "config": {"tags": "vip"}})
        assert step == AddTagStep(tags=("vip",))

    def test_empty_tags_raise(self) -> None:
        with pytest.raises(ValidationException):
            parse_step({"type": "add_tag", "config": {"tags": []}})

    def test_webhook_defaults_to_post(self) -> None:
        step = parse_step({"type": "webhook", "config": {"url": "https://hooks.example.com/x"}})
        assert isinstance(step, WebhookStep)
        assert step.method == "POST"
        assert step.headers == {}

    def test_webhook_requires_http_url(self) -> None:
        with pytest.raises(ValidationException, match="http"):
            parse_step({"type": "webhook", "config": {"url": "ftp://example.com"}})

    def test_delay_unknown_unit_strict_vs_lenient(self) -> None:
        raw = {"type": "delay", "config": {"value": 2, "unit": "fortnights"}}
        with pytest.raises(ValidationException, match="delay unit"):
            parse_step(raw, strict=True)
        assert parse_step(raw, strict=False) == DelayStep(value=2, unit="fortnights")

    def test_delay_negative_value_raises(self) -> None:
        with pytest.raises(ValidationException):
            parse_step({"type": "delay", "config": {"value": -1, "unit": "days"}})

    def test_delay_longer_than_ten_years_raises(self) -> None:
        with pytest.raises(ValidationException, match="3650 days") as exc:
            validate_steps([{"type": "delay", "config": {"value": 10_000_000, "unit": "days"}}])
        assert exc.value.details == {"field": "steps[0].config.value"}

    def test_delay_bound_applies_to_unitless_minutes(self) -> None:
        with pytest.raises(ValidationException):
            parse_step({"type": "delay", "config": {"value": 10**12}}, strict=False)

    def test_delay_just_under_ten_years_is_accepted(self) -> None:
        assert parse_step({"type": "delay", "config": {"value": 520, "unit": "weeks"}}) == (
            DelayStep(value=520, unit="weeks")
        )

    def test_delay_non_finite_value_raises(self) -> None:
        with pytest.raises(ValidationException, match="non-negative number"):
            parse_step({"type": "delay", "config": {"value": float("inf"), "unit": "days"}})

    def test_condition_unknown_operator_lenient(self) -> None:
        raw = {
            "type": "condition",
            "config": {"field": "x", "operator": "regex", "trueStep": 1, "falseStep": 2},
        }
        with pytest.raises(ValidationException, match="Unknown operator"):
            parse_step(raw, strict=True)
        step = parse_step(raw, strict=False)
        assert isinstance(step, ConditionStep)
        assert step.condition.operator == "regex"

    def test_condition_requires_integer_targets(self) -> None:
        with pytest.raises(ValidationException, match="trueStep"):
            parse_step(
                {
                    "type": "condition",
                    "config": {"field": "x", "operator": "is_set", "trueStep": "1", "falseStep": 2},
                }
            )

    def test_exit_has_no_config(self) -> None:
        assert parse_step({"type": "exit"}) == ExitStep()

    def test_step_to_dict_matches_stored_shape(self) -> None:
        raw = {
            "type": "condition",
            "config": {
                "field": "cart_recovered",
                "operator": "equals",
                "value": False,
                "trueStep": 3,
                "falseStep": 5,
            },
        }
        assert step_to_dict(parse_step(raw)) == raw


class TestValidateSteps:
    def _condition(self, true_step: int, false_step: int) -> dict:
        return {
            "type": "condition",
            "config": {
                "field": "x",
                "operator": "is_set",
                "trueStep": true_step,
                "falseStep": false_step,
            },
        }

    def test_target_equal_to_length_is_allowed(self) -> None:
        steps = [self._condition(1, 2), {"type": "exit"}]
        assert len(validate_steps(steps)) == 2

    def test_target_past_end_raises(self) -> None:
        with pytest.raises(ValidationException) as exc:
            validate_steps([self._condition(1, 7), {"type": "exit"}])
        assert exc.value.details["field"] == "steps[0].config.falseStep"

    def test_negative_target_raises(self) -> None:
        with pytest.raises(ValidationException):
            validate_steps([self._condition(-1, 1)])

    def test_empty_list_is_valid(self) -> None:
        assert validate_steps([]) == []


class TestParseTriggerConfig:
    def test_empty(self) -> None:
        config = parse_trigger_config(None)
        assert config.conditions == ()
        assert config.allow_re_enrollment is False

    def test_allow_re_enrollment_and_extras_kept(self) -> None:
        config = parse_trigger_config({"allowReEnrollment": True, "segmentId": "seg1"})
        assert config.allow_re_enrollment is True
        assert config.to_dict() == {"segmentId": "seg1", "allowReEnrollment": True}

    def test_in_operator_requires_list_when_strict(self) -> None:
        raw = {"conditions": [{"field": "country", "operator": "in", "value": "US"}]}
        with pytest.raises(ValidationException, match="list"):
            parse_trigger_config(raw)
