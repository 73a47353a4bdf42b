"""Time-sortable identifiers.

An identifier looks like ``plan_0192f3a4b5c6Xy9...``: a type prefix, an
underscore and 26 characters. The first 12 are the hex encoding of
``timestamp_ms * 4096 + counter`` (48 bits, big-endian) and the remaining 14
are random base62, so sorting identifiers lexically sorts them by creation
time.
"""

import re
import secrets
import string
import threading
import time

PREFIXES = {
    "session": "ses",
    "message": "msg",
    "part": "prt",
    "question": "que",
    "plan": "plan",
    "execution": "exec",
    "task": "task",
}

ID_LENGTH = 26
_TIME_HEX_LENGTH = 12
_RANDOM_LENGTH = ID_LENGTH - _TIME_HEX_LENGTH
_BASE62 = string.digits + string.ascii_uppercase + string.ascii_lowercase


def _random_base62(length: int) -> str:
    return "".join(secrets.choice(_BASE62) for _ in range(length))


class IdentifierGenerator:
    """Generates identifiers that are strictly increasing within one instance.

    Identifiers minted in the same millisecond are ordered by a per-millisecond
    counter. The counter is not checked for overflow past 4096 per millisecond.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_timestamp = 0
        self._counter = 0

    def generate(self, prefix: str) -> str:
        """Generate a new identifier with the given prefix.

        Args:
            prefix: Entity prefix such as "plan" or "ses"

        Returns:
            The identifier string
        """
        with self._lock:
            now = time.time_ns() // 1_000_000
            if now > self._last_timestamp:
                self._last_timestamp = now
                self._counter = 0
            else:
                # Same millisecond, or the clock moved backwards
                self._counter += 1
            value = self._last_timestamp * 4096 + self._counter

        time_part = (value & 0xFFFFFFFFFFFF).to_bytes(6, "big").hex()
        return f"{prefix}_{time_part}{_random_base62(_RANDOM_LENGTH)}"


_default_generator = IdentifierGenerator()


def generate_id(prefix: str) -> str:
    """Generate an identifier from the process-wide generator."""
    return _default_generator.generate(prefix)


def extract_timestamp(identifier: str) -> int:
    """Return the millisecond timestamp embedded in an identifier.

    Args:
        identifier: An identifier produced by generate_id

    Returns:
        Milliseconds since the epoch

    Raises:
        ValueError: If the identifier is not well formed
    """
    prefix, sep, body = identifier.partition("_")
    if not sep or len(body) != ID_LENGTH:
        raise ValueError(f"Invalid identifier: {identifier}")
    return int(body[:_TIME_HEX_LENGTH], 16) // 4096


def id_pattern(prefix: str) -> str:
    """Regex matching identifiers with the given prefix."""
    return rf"^{re.escape(prefix)}_[0-9a-f]{{{_TIME_HEX_LENGTH}}}[0-9A-Za-z]{{{_RANDOM_LENGTH}}}$"
