"""Database error translation for store adapters"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from domain.matching import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def translate_database_errors(operation: str):
    """Re-raise SQLAlchemy failures as PersistenceError.

    Example:
        with translate_database_errors("profile lookup"):
            result = await session.execute(query)
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Database error during {operation}: {e}")
        raise PersistenceError(f"Database error during {operation}") from e
