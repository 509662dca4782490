from sqlalchemy.orm import Session

from banked.config import settings
from banked.ledger import take_diamonds
from banked.logging_config import get_logger
from banked.results import Ok, Result
from banked.schemas import RetryPurchased
from banked.unit_of_work import atomic

logger = get_logger(__name__)


@atomic
def spend_for_retry(db: Session, account_id: int, cost: int | None = None) -> Result[RetryPurchased]:
    cost = settings.retry_cost if cost is None else cost
    result = take_diamonds(db, account_id, cost)
    if not isinstance(result, Ok):
        return result
    logger.info("Retry purchased account_id=%s cost=%s diamonds_remaining=%s", account_id, cost, result.value.diamonds)
    return Ok(RetryPurchased(diamondsRemaining=result.value.diamonds))
