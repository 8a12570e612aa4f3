"""
Boundary between domain actions and their callers.

Actions raise ActionFailure for expected failures and let SQLAlchemy errors
propagate; the `envelope` decorator turns both into a failed result of the
action's envelope type, so callers only ever receive values.
"""

import functools
import logging

from sqlalchemy.exc import SQLAlchemyError

from studygroup.config import sanitize_error
from studygroup.schemas.base import ActionResult, FailureReason

logger = logging.getLogger(__name__)


class ActionFailure(Exception):
    """An expected failure with a user-facing message."""

    def __init__(self, error: str, reason: FailureReason):
        super().__init__(error)
        self.error = error
        self.reason = reason


def backend_error_message(error: Exception, generic_message: str) -> str:
    detail = sanitize_error(error, generic_message="")
    return f"{generic_message} ({detail})" if detail else generic_message


def envelope(result_type: type[ActionResult], *, generic_message: str):
    """Convert ActionFailure and database errors raised by an action into `result_type` failures."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(db, *args, **kwargs):
            try:
                return await func(db, *args, **kwargs)
            except ActionFailure as failure:
                return result_type.fail(failure.error, failure.reason)
            except SQLAlchemyError as e:
                logger.exception("%s failed", func.__name__)
                await db.rollback()
                return result_type.fail(backend_error_message(e, generic_message), "backend")

        return wrapper

    return decorator
