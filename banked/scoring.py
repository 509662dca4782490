from sqlalchemy import update
from sqlalchemy.orm import Session

from banked.config import settings
from banked.ledger import apply_deltas, read_account
from banked.logging_config import get_logger
from banked.models import Account, ScoreRecord
from banked.results import Ok, Result, invalid, not_found
from banked.schemas import ScoreResult
from banked.unit_of_work import atomic

logger = get_logger(__name__)


def diamonds_for(points: int) -> int:
    return max(points, 0) // settings.points_per_diamond


def level_for(xp: int) -> int:
    return 1 + xp // settings.xp_per_level


@atomic
def record_score(db: Session, account_id: int, game_id: str, raw_points: int) -> Result[ScoreResult]:
    """
    Append a score to the history and pay out its reward.

    Negative scores are clamped to zero. The history row, the diamond/xp
    credit and any level-up commit together or not at all.
    """
    if not game_id or not game_id.strip():
        return invalid("gameId is required")
    points = max(raw_points, 0)
    awarded = diamonds_for(points)
    if read_account(db, account_id) is None:
        return not_found("account", account_id)

    db.add(ScoreRecord(account_id=account_id, game_id=game_id.strip(), points=points))
    db.flush()

    result = apply_deltas(db, account_id, diamonds=awarded, xp=points)
    if not isinstance(result, Ok):
        return result
    snapshot = result.value

    level = level_for(snapshot.xp)
    if level > snapshot.level:
        db.execute(
            update(Account)
            .where(Account.id == account_id, Account.level < level)
            .values(level=level)
            .execution_options(synchronize_session=False)
        )
        logger.info("Level up account_id=%s level=%s", account_id, level)
    else:
        level = snapshot.level

    logger.info(
        "Recorded score account_id=%s game_id=%s points=%s diamonds_awarded=%s xp=%s",
        account_id,
        game_id,
        points,
        awarded,
        snapshot.xp,
    )
    return Ok(ScoreResult(diamondsAwarded=awarded, newXp=snapshot.xp, level=level))
