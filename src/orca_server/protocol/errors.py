"""Error codes carried by failure envelopes."""

from enum import Enum


class ErrorCode(str, Enum):
    """Reason a dispatch ended in a failure envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_AGENT = "UNKNOWN_AGENT"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    AGENT_ERROR = "AGENT_ERROR"
    TIMEOUT = "TIMEOUT"
