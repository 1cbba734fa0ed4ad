"""Exceptions raised by the vote worker clients."""


class VoteWorkerError(Exception):
    """Base class for vote worker errors."""
    pass


class ConnectError(VoteWorkerError):
    """A dependency could not be reached and the retry policy gave up."""
    pass


class ParseError(VoteWorkerError):
    """A queue payload is not a well-formed vote."""
    pass


class DatabaseError(VoteWorkerError):
    """PostgreSQL rejected or lost a statement after the connection was made."""
    pass


class QueueError(VoteWorkerError):
    """Redis failed while reading or writing the vote queue."""
    pass
