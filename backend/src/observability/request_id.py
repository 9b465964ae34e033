"""Request ID propagation for log correlation.

The ID lives in a ContextVar so it follows a request across awaits and into
the tasks the ranker fans out with asyncio.gather.
"""

import uuid
from contextvars import ContextVar, Token
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Current request ID, or "no-request-id" outside a request."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> Token:
    """Bind request_id to the current context.

    Returns:
        Token: Pass to reset_request_id() once the request finishes
    """
    return request_id_var.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_var.reset(token)
