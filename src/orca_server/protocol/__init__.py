"""Message envelope protocol and response validation.

Agents communicate through closed JSON envelopes discriminated by ``type``.
This package defines the envelopes and the bounded validate-and-correct loop
applied to every agent response.
"""

from orca_server.protocol.errors import ErrorCode
from orca_server.protocol.messages import (
    AnswerMessage,
    CheckpointMessage,
    FailureMessage,
    InterruptMessage,
    MessageEnvelope,
    PlanContext,
    PlanMessage,
    PlanStep,
    QuestionMessage,
    RequestEnvelope,
    ResponseEnvelope,
    SuccessMessage,
    TaskMessage,
    envelope_to_dict,
    parse_envelope,
    parse_request,
    utc_now,
)
from orca_server.protocol.validation import (
    RetrySender,
    ValidationConfig,
    ValidationResult,
    create_failure,
    format_validation_errors,
    strip_markdown_code_fence,
    validate_envelope,
    validate_message,
    validate_request,
    validate_with_retry,
    wrap_as_answer,
)

__all__ = [
    "ErrorCode",
    "AnswerMessage",
    "CheckpointMessage",
    "FailureMessage",
    "InterruptMessage",
    "MessageEnvelope",
    "PlanContext",
    "PlanMessage",
    "PlanStep",
    "QuestionMessage",
    "RequestEnvelope",
    "ResponseEnvelope",
    "SuccessMessage",
    "TaskMessage",
    "envelope_to_dict",
    "parse_envelope",
    "parse_request",
    "utc_now",
    "RetrySender",
    "ValidationConfig",
    "ValidationResult",
    "format_validation_errors",
    "create_failure",
    "strip_markdown_code_fence",
    "validate_envelope",
    "validate_message",
    "validate_request",
    "validate_with_retry",
    "wrap_as_answer",
]
