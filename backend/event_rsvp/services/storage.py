"""Shared failure handling for repository reads."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from event_rsvp.errors import OperationFailedError, is_missing_table

logger = logging.getLogger(__name__)


def degrade_or_raise(db: Session, exc: SQLAlchemyError, operation: str, table: str) -> None:
    """Roll back a failed read and return only if it may degrade to empty.

    A missing table is a degraded-mode read; anything else is re-raised as
    OperationFailedError.
    """
    db.rollback()
    if is_missing_table(exc):
        logger.warning("Table '%s' does not exist yet; %s returns no data", table, operation)
        return
    logger.exception("Failed to %s", operation)
    raise OperationFailedError(operation, getattr(exc, "orig", None) or exc) from exc
