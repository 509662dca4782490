from sqlalchemy.orm import Session

from banked.ledger import take_life
from banked.logging_config import get_logger
from banked.results import Ok, Result
from banked.schemas import SessionStarted
from banked.unit_of_work import atomic

logger = get_logger(__name__)


@atomic
def start_session(db: Session, account_id: int) -> Result[SessionStarted]:
    """
    Consume one life to start a game session.

    The check and the decrement are a single conditional UPDATE, so two racing
    calls against the last life cannot both succeed.
    """
    result = take_life(db, account_id)
    if not isinstance(result, Ok):
        return result
    logger.info("Session started account_id=%s lives_remaining=%s", account_id, result.value.lives)
    return Ok(SessionStarted(livesRemaining=result.value.lives))
