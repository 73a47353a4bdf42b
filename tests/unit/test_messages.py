"""Unit tests for the message envelope models."""

import pytest
from pydantic import ValidationError

from orca_server.identifier import generate_id
from orca_server.protocol import (
    AnswerMessage,
    ErrorCode,
    FailureMessage,
    InterruptMessage,
    PlanMessage,
    TaskMessage,
    envelope_to_dict,
    parse_envelope,
    parse_request,
    utc_now,
)


def _task(**overrides):
    data = {
        "type": "task",
        "session_id": generate_id("ses"),
        "timestamp": "2026-01-02T03:04:05.678Z",
        "agent_id": "coder",
        "prompt": "Write code",
    }
    data.update(overrides)
    return data


def test_parse_task_envelope():
    envelope = parse_envelope(_task(plan_context={"goal": "X", "step_index": 0, "approved_remaining": False}))

    assert isinstance(envelope, TaskMessage)
    assert envelope.plan_context.approved_remaining is False


def test_unknown_field_is_rejected():
    with pytest.raises(ValidationError):
        parse_envelope(_task(extra_field="nope"))


def test_unknown_type_is_rejected():
    with pytest.raises(ValidationError):
        parse_envelope({"type": "result", "agent_id": "coder"})


@pytest.mark.parametrize(
    "timestamp",
    ["2026-01-02T03:04:05", "2026-01-02T03:04:05+00:00", "yesterday"],
)
def test_timestamp_requires_z_suffix(timestamp):
    with pytest.raises(ValidationError):
        parse_envelope(_task(timestamp=timestamp))


@pytest.mark.parametrize(
    "timestamp",
    ["2024-13-45T99:99:99Z", "2026-02-30T10:00:00Z", "2026-01-02T10:61:00.5Z"],
)
def test_timestamp_must_be_a_real_date(timestamp):
    with pytest.raises(ValidationError):
        parse_envelope(_task(timestamp=timestamp))


def test_timestamp_without_fraction_is_accepted():
    assert parse_envelope(_task(timestamp="2026-01-02T03:04:05Z"))


def test_request_requires_session_identifier():
    with pytest.raises(ValidationError):
        parse_envelope(_task(session_id="1b4e28ba-2fa1-11d2-883f-0016d3cca427"))


def test_response_envelopes_have_no_session_id():
    with pytest.raises(ValidationError):
        parse_envelope({"type": "answer", "agent_id": "coder", "content": "x", "session_id": generate_id("ses")})


def test_failure_has_no_agent_id():
    envelope = parse_envelope({"type": "failure", "code": "TIMEOUT", "message": "Too slow"})
    assert isinstance(envelope, FailureMessage)
    assert envelope.code is ErrorCode.TIMEOUT

    with pytest.raises(ValidationError):
        parse_envelope({"type": "failure", "code": "TIMEOUT", "message": "x", "agent_id": "coder"})


def test_plan_requires_non_empty_collections():
    plan = {
        "type": "plan",
        "agent_id": "planner",
        "goal": "Ship",
        "steps": [{"description": "Write code", "agent": "coder"}],
        "assumptions": ["a"],
        "verification": ["v"],
        "risks": ["r"],
    }
    assert isinstance(parse_envelope(plan), PlanMessage)

    with pytest.raises(ValidationError):
        parse_envelope({**plan, "risks": []})


def test_parse_request_rejects_response_types():
    interrupt = parse_request(
        {
            "type": "interrupt",
            "session_id": generate_id("ses"),
            "timestamp": utc_now(),
            "agent_id": "coder",
            "reason": "User cancelled",
        }
    )
    assert isinstance(interrupt, InterruptMessage)

    with pytest.raises(ValidationError):
        parse_request({"type": "answer", "agent_id": "coder", "content": "x"})


def test_envelope_to_dict_omits_unset_optionals():
    data = envelope_to_dict(AnswerMessage(agent_id="coder", content="Done"))

    assert data == {"type": "answer", "agent_id": "coder", "content": "Done"}


def test_utc_now_matches_timestamp_format():
    assert parse_envelope(_task(timestamp=utc_now()))
