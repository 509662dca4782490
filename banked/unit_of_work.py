import functools

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from banked.logging_config import get_logger
from banked.results import ErrorCode, Failure

logger = get_logger(__name__)


class _Rollback(Exception):
    def __init__(self, failure: Failure):
        super().__init__(failure.message)
        self.failure = failure


def atomic(operation):
    """
    Run ``operation(db, ...)`` inside a single transaction on ``db``.

    The transaction commits only when the operation returns ``Ok``. A returned
    ``Failure`` rolls every sub-step back and is handed to the caller as-is.
    Store errors (constraint violations, lost connections) are rolled back and
    reported as TRANSACTION_FAILURE, so the same call can be retried verbatim.
    The session must not have a transaction open when this is called.
    """

    @functools.wraps(operation)
    def wrapper(db: Session, *args, **kwargs):
        try:
            with db.begin():
                outcome = operation(db, *args, **kwargs)
                if isinstance(outcome, Failure):
                    raise _Rollback(outcome)
        except _Rollback as rollback:
            logger.info(
                "Rolled back %s code=%s message=%s",
                operation.__name__,
                rollback.failure.code.value,
                rollback.failure.message,
            )
            return rollback.failure
        except SQLAlchemyError as exc:
            logger.warning("Transaction failed in %s: %s", operation.__name__, exc)
            return Failure(ErrorCode.TRANSACTION_FAILURE, f"{operation.__name__} aborted: {exc.__class__.__name__}")
        return outcome

    return wrapper
