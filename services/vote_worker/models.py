"""
Vote data model and payload parsing.

This module contains:
- VoteEvent: a single vote as it travels through the queue
- parse_vote: turns a raw queue payload into a VoteEvent
- QueueMessage / EMPTY: the two possible results of popping the queue
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Union

from .exceptions import ParseError

# Wire field names used by the producer
VOTE_FIELD = 'vote'
VOTER_ID_FIELD = 'voter_id'


@dataclass(frozen=True)
class VoteEvent:
    """
    A voter's choice as read from the queue.

    Attributes:
        voter_id: Opaque voter identifier, unique per voter
        choice: Selected option tag
    """
    voter_id: str
    choice: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the queue payload shape."""
        return {VOTE_FIELD: self.choice, VOTER_ID_FIELD: self.voter_id}

    def to_json(self) -> str:
        """Convert to a compact JSON payload for the queue."""
        return json.dumps(self.to_dict(), separators=(',', ':'))


def _required_string(data: Dict[str, Any], field: str) -> str:
    value = data.get(field)
    if value is None:
        raise ParseError(f"Missing required field '{field}'")
    if not isinstance(value, str):
        raise ParseError(f"Field '{field}' must be a string, got {type(value).__name__}")
    value = value.strip()
    if not value:
        raise ParseError(f"Field '{field}' is empty")
    return value


def parse_vote(raw: Union[str, bytes]) -> VoteEvent:
    """
    Parse a raw queue payload into a VoteEvent.

    Extra fields are ignored; surrounding whitespace is stripped from both
    required fields.

    Args:
        raw: JSON object text, e.g. '{"vote":"a","voter_id":"123"}'

    Returns:
        VoteEvent: The parsed vote

    Raises:
        ParseError: If the payload is not a JSON object or either field is
            missing, not a string, or empty
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ParseError(f"Payload is not valid UTF-8: {e}") from e

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Invalid JSON in payload: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Payload must be a JSON object, got {type(data).__name__}")

    return VoteEvent(
        voter_id=_required_string(data, VOTER_ID_FIELD),
        choice=_required_string(data, VOTE_FIELD)
    )


@dataclass(frozen=True)
class QueueMessage:
    """A payload popped from the vote queue, as Redis returned it."""
    payload: Union[str, bytes]


class QueueEmpty:
    """Returned by a pop when the queue has nothing in it."""

    __slots__ = ()

    def __repr__(self):
        return 'EMPTY'

    def __bool__(self):
        return False


EMPTY = QueueEmpty()

PopResult = Union[QueueMessage, QueueEmpty]
