"""Error taxonomy for the matching engine.

ValidationError and NotFoundError are raised by the engine itself.
PersistenceError is raised by store adapters and propagated unmodified.
OperationCancelledError is raised when a caller cancels an in-flight call.
"""


class MatchingError(Exception):
    """Base exception for matching engine operations"""
    pass


class ValidationError(MatchingError):
    """Missing or malformed input, or an out-of-range value write"""
    pass


class NotFoundError(MatchingError):
    """Requested profile or user does not exist"""

    def __init__(self, message: str, subject_id=None):
        super().__init__(message)
        self.subject_id = subject_id


class PersistenceError(MatchingError):
    """Storage collaborator failed"""
    pass


class OperationCancelledError(MatchingError):
    """Caller cancelled the operation before it completed"""
    pass
