"""Cooperative cancellation signal passed into every matching entry point."""

from typing import Optional

from .errors import OperationCancelledError


class CancellationToken:
    """Cancellation flag checked before each remote-call boundary.

    The token is cooperative: setting it does not interrupt a call that is
    already running, but every profile fetch, oracle call and persistence
    write checks it first.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(ranker.rank(user_id, cancellation=token))
        token.cancel("client disconnected")
    """

    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self._cancelled = True
        self._reason = reason

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self, stage: str = "") -> None:
        """Raise OperationCancelledError if the token was cancelled.

        Args:
            stage: Boundary about to be crossed (for the error message)

        Raises:
            OperationCancelledError: If cancel() has been called
        """
        if not self._cancelled:
            return
        message = "Operation cancelled"
        if stage:
            message += f" before {stage}"
        if self._reason:
            message += f": {self._reason}"
        raise OperationCancelledError(message)


def check_cancelled(token: Optional[CancellationToken], stage: str) -> None:
    """Check an optional token; None means the caller cannot cancel."""
    if token is not None:
        token.raise_if_cancelled(stage)
