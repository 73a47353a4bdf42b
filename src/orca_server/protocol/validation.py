"""Validation of raw agent output against the envelope protocol.

Agents are LLMs and frequently return almost-correct output: JSON wrapped in
a markdown fence, a missing field, or plain prose. ``validate_with_retry``
normalises what it can and otherwise sends the agent a correction prompt
listing every problem, up to a bounded number of attempts.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, TypeAdapter, ValidationError

from orca_server.protocol.errors import ErrorCode
from orca_server.protocol.messages import (
    AnswerMessage,
    FailureMessage,
    envelope_adapter,
    request_adapter,
)

logger = logging.getLogger(__name__)

RetrySender = Callable[[str], Awaitable[str]]
"""Correction channel: takes a correction prompt, returns the agent's new raw output."""

INVALID_JSON_ERROR = (
    "Response is not valid JSON. Please respond with a valid JSON message envelope."
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*\n?([\s\S]*?)\n?```$", re.IGNORECASE)


@dataclass
class ValidationConfig:
    """Retry policy for response validation."""

    max_retries: int = 2
    wrap_plain_text: bool = False


@dataclass
class ValidationIssue:
    """A single schema violation."""

    path: str
    message: str


@dataclass
class ValidationResult:
    """Outcome of one validation attempt."""

    envelope: BaseModel | None = None
    error: str | None = None
    issues: list[ValidationIssue] | None = None

    @property
    def success(self) -> bool:
        return self.envelope is not None


def strip_markdown_code_fence(raw: str) -> str:
    """Remove a single enclosing ``` or ```json fence and trim whitespace."""
    trimmed = raw.strip()
    match = _CODE_FENCE.match(trimmed)
    return match.group(1).strip() if match else trimmed


def is_plain_text(content: str) -> bool:
    """Check whether content cannot be JSON (does not start with { or [)."""
    trimmed = content.strip()
    return not trimmed.startswith("{") and not trimmed.startswith("[")


def _issue_path(loc: tuple[Any, ...], data: Any) -> str:
    parts = list(loc)
    # Tagged-union errors are prefixed with the tag value
    if parts and isinstance(data, dict) and parts[0] == data.get("type"):
        parts = parts[1:]
    return ".".join(str(p) for p in parts) if parts else "root"


def format_validation_errors(issues: list[ValidationIssue]) -> str:
    """Render issues as the correction prompt sent back to the agent."""
    lines = "\n".join(f"- {issue.path}: {issue.message}" for issue in issues)
    return (
        f"Message validation failed:\n{lines}\n\n"
        "Please correct the message format and try again."
    )


def validate_envelope(data: Any, adapter: TypeAdapter = envelope_adapter) -> ValidationResult:
    """Validate already-decoded JSON against the envelope union."""
    try:
        envelope = adapter.validate_python(data)
    except ValidationError as e:
        issues = [
            ValidationIssue(path=_issue_path(err["loc"], data), message=err["msg"])
            for err in e.errors()
        ]
        return ValidationResult(error=format_validation_errors(issues), issues=issues)
    return ValidationResult(envelope=envelope)


def validate_request(data: Any) -> ValidationResult:
    """Validate decoded JSON as a request envelope (task or interrupt)."""
    return validate_envelope(data, request_adapter)


def validate_message(raw: str) -> ValidationResult:
    """Parse and validate a raw JSON string.

    Args:
        raw: Candidate envelope text

    Returns:
        ValidationResult holding either the envelope or the error text
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return ValidationResult(error=INVALID_JSON_ERROR)
    return validate_envelope(data)


def wrap_as_answer(content: str, agent_id: str) -> AnswerMessage:
    """Wrap plain text in an answer envelope."""
    return AnswerMessage(agent_id=agent_id, content=content)


def create_failure(
    code: ErrorCode, message: str, cause: str | None = None
) -> FailureMessage:
    """Build a failure envelope."""
    return FailureMessage(code=code, message=message, cause=cause)


async def validate_with_retry(
    raw: str,
    agent_id: str,
    config: ValidationConfig | None = None,
    retry_sender: RetrySender | None = None,
) -> BaseModel:
    """Validate agent output, asking the agent to correct itself on failure.

    Each attempt strips a markdown fence, optionally wraps plain text as an
    answer, then parses and validates. On failure the error text is sent
    through ``retry_sender`` and its reply becomes the next attempt, for at
    most ``config.max_retries`` corrections.

    Args:
        raw: Raw text produced by the agent
        agent_id: Agent the output came from (used when wrapping plain text)
        config: Retry policy, defaults to ValidationConfig()
        retry_sender: Optional correction channel

    Returns:
        The validated envelope, or a VALIDATION_ERROR failure envelope
    """
    config = config or ValidationConfig()
    current = strip_markdown_code_fence(raw)
    attempts = 0

    while True:
        if config.wrap_plain_text and is_plain_text(current):
            logger.debug(f"Wrapping plain text response from {agent_id} as answer")
            return wrap_as_answer(current, agent_id)

        result = validate_message(current)
        if result.success:
            return result.envelope

        if retry_sender is None or attempts >= config.max_retries:
            logger.warning(
                f"Response from {agent_id} failed validation after {attempts + 1} attempt(s)"
            )
            return create_failure(
                ErrorCode.VALIDATION_ERROR,
                f"Message validation failed after {attempts + 1} attempt(s)",
                cause=result.error,
            )

        attempts += 1
        logger.debug(f"Requesting correction from {agent_id} (attempt {attempts + 1})")
        current = strip_markdown_code_fence(await retry_sender(result.error))
