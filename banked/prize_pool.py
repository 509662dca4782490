from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from banked.config import PRIZE_POOL_ID, settings
from banked.ledger import read_account
from banked.logging_config import get_logger
from banked.models import PrizePool
from banked.results import Ok, Result, not_found
from banked.schemas import PrizePoolState
from banked.unit_of_work import atomic

logger = get_logger(__name__)

# backends with INSERT ... ON CONFLICT DO NOTHING
UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _state(pool: PrizePool | None) -> PrizePoolState:
    if pool is None:
        return PrizePoolState(total=0, participants=0)
    return PrizePoolState(total=pool.total, participants=pool.participants)


def _load(db: Session) -> PrizePool | None:
    return db.get(PrizePool, PRIZE_POOL_ID, populate_existing=True)


def _create_row_if_missing(db: Session) -> bool:
    """
    Insert the singleton row, doing nothing when another transaction already has.
    """
    insert = UPSERT_INSERTS[db.get_bind().dialect.name]
    stmt = (
        insert(PrizePool)
        .values(id=PRIZE_POOL_ID, total=0, participants=0)
        .on_conflict_do_nothing(index_elements=[PrizePool.id])
    )
    return db.execute(stmt).rowcount == 1


@atomic
def ensure_pool(db: Session) -> Result[PrizePoolState]:
    if _create_row_if_missing(db):
        logger.info("Created prize pool row")
    return Ok(_state(_load(db)))


@atomic
def enter(db: Session, account_id: int) -> Result[PrizePoolState]:
    value = settings.prize_pool_entry_value
    _create_row_if_missing(db)
    db.execute(
        update(PrizePool)
        .where(PrizePool.id == PRIZE_POOL_ID)
        .values(total=PrizePool.total + value, participants=PrizePool.participants + 1)
        .execution_options(synchronize_session=False)
    )
    if read_account(db, account_id) is None:
        return not_found("account", account_id)
    state = _state(_load(db))
    logger.info("Prize pool entry account_id=%s total=%s participants=%s", account_id, state.total, state.participants)
    return Ok(state)


@atomic
def get_pool(db: Session) -> Result[PrizePoolState]:
    return Ok(_state(_load(db)))
