"""Unit tests for response validation and the correction loop."""

import json
from unittest.mock import AsyncMock

import pytest

from orca_server.protocol import (
    AnswerMessage,
    ErrorCode,
    FailureMessage,
    SuccessMessage,
    ValidationConfig,
    envelope_to_dict,
    strip_markdown_code_fence,
    validate_message,
    validate_with_retry,
)
from orca_server.protocol.validation import INVALID_JSON_ERROR, is_plain_text

SUCCESS = '{"type": "success", "agent_id": "coder", "summary": "Done"}'


@pytest.mark.parametrize(
    "raw",
    [
        SUCCESS,
        f"```json\n{SUCCESS}\n```",
        f"```JSON\n{SUCCESS}\n```",
        f"  ```\n  {SUCCESS}  \n```  ",
    ],
)
def test_strip_markdown_code_fence(raw):
    assert strip_markdown_code_fence(raw) == SUCCESS


def test_strip_leaves_unfenced_text_trimmed():
    assert strip_markdown_code_fence("  hello  ") == "hello"


def test_is_plain_text():
    assert is_plain_text("The answer is 42")
    assert not is_plain_text('  {"type": "answer"}')
    assert not is_plain_text("[1, 2]")


def test_validate_message_invalid_json():
    result = validate_message("{not json")

    assert not result.success
    assert result.error == INVALID_JSON_ERROR


def test_validate_message_lists_every_issue():
    result = validate_message('{"type": "success", "agent_id": "coder", "bogus": 1}')

    assert not result.success
    assert result.error.startswith("Message validation failed:\n")
    assert "- summary: " in result.error
    assert "- bogus: " in result.error
    assert result.error.endswith("\n\nPlease correct the message format and try again.")


def test_validate_message_root_path_for_non_object():
    result = validate_message("[]")

    assert not result.success
    assert "- root: " in result.error


@pytest.mark.asyncio
async def test_valid_fenced_response_needs_no_retry():
    sender = AsyncMock()

    envelope = await validate_with_retry(f"```json\n{SUCCESS}\n```", "coder", retry_sender=sender)

    assert isinstance(envelope, SuccessMessage)
    assert envelope.summary == "Done"
    sender.assert_not_called()


@pytest.mark.asyncio
async def test_plain_text_wrapped_when_enabled():
    envelope = await validate_with_retry(
        "Just some prose", "researcher", config=ValidationConfig(wrap_plain_text=True)
    )

    assert isinstance(envelope, AnswerMessage)
    assert envelope.content == "Just some prose"
    assert envelope.agent_id == "researcher"


@pytest.mark.asyncio
async def test_plain_text_wrap_is_idempotent():
    config = ValidationConfig(wrap_plain_text=True)
    text = "Line one\nLine two: with colon"

    first = await validate_with_retry(text, "coder", config=config)
    second = await validate_with_retry(first.content, "coder", config=config)

    assert second.content == first.content == text


@pytest.mark.asyncio
async def test_plain_text_is_invalid_json_when_not_wrapping():
    envelope = await validate_with_retry("Just some prose", "coder")

    assert isinstance(envelope, FailureMessage)
    assert envelope.code is ErrorCode.VALIDATION_ERROR
    assert envelope.message == "Message validation failed after 1 attempt(s)"
    assert envelope.cause == INVALID_JSON_ERROR


@pytest.mark.asyncio
async def test_retry_sends_correction_and_accepts_fix():
    sender = AsyncMock(return_value=SUCCESS)

    envelope = await validate_with_retry(
        '{"type": "success", "agent_id": "coder"}', "coder", retry_sender=sender
    )

    assert isinstance(envelope, SuccessMessage)
    sender.assert_awaited_once()
    correction = sender.await_args.args[0]
    assert "- summary: " in correction


@pytest.mark.asyncio
async def test_retries_are_bounded():
    sender = AsyncMock(return_value="still not json")

    envelope = await validate_with_retry(
        "nope", "coder", config=ValidationConfig(max_retries=2), retry_sender=sender
    )

    assert isinstance(envelope, FailureMessage)
    assert envelope.message == "Message validation failed after 3 attempt(s)"
    assert sender.await_count == 2


@pytest.mark.asyncio
async def test_zero_retries_never_calls_sender():
    sender = AsyncMock()

    envelope = await validate_with_retry(
        "nope", "coder", config=ValidationConfig(max_retries=0), retry_sender=sender
    )

    assert isinstance(envelope, FailureMessage)
    sender.assert_not_called()


@pytest.mark.asyncio
async def test_valid_envelope_round_trips():
    original = {
        "type": "answer",
        "agent_id": "researcher",
        "timestamp": "2026-03-04T05:06:07.890Z",
        "content": "See the docs",
        "sources": [{"type": "url", "ref": "https://example.com", "title": "Docs"}],
        "annotations": [{"type": "caveat", "content": "Docs may be stale"}],
    }

    envelope = await validate_with_retry(json.dumps(original), "researcher")

    assert envelope_to_dict(envelope) == original
