from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from banked.config import settings
from banked.logging_config import get_logger
from banked.models import Account
from banked.results import ErrorCode, Failure, Ok, Result, invalid, not_found
from banked.schemas import BalanceDeltas, BalanceSnapshot, LeaderboardEntry, RegisterAccountRequest
from banked.unit_of_work import atomic

logger = get_logger(__name__)


def to_snapshot(account: Account) -> BalanceSnapshot:
    return BalanceSnapshot(
        accountId=account.id,
        balanceCents=account.balance_cents,
        diamonds=account.diamonds,
        lives=account.lives,
        xp=account.xp,
        level=account.level,
    )


def read_account(db: Session, account_id: int) -> Optional[Account]:
    # bulk UPDATEs bypass the identity map, so always reload the row
    stmt = select(Account).where(Account.id == account_id).execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()


def _apply(db: Session, account_id: int, guards, values) -> bool:
    stmt = (
        update(Account)
        .where(Account.id == account_id, *guards)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


def apply_deltas(db: Session, account_id: int, currency: int = 0, diamonds: int = 0, xp: int = 0) -> Result[BalanceSnapshot]:
    """
    Add signed deltas to an account in one conditional UPDATE.

    The WHERE clause rejects the write when any resulting balance would be
    negative, so the check and the write cannot be interleaved with another
    adjustment on the same row. Runs inside the caller's transaction.
    """
    applied = _apply(
        db,
        account_id,
        guards=(
            Account.balance_cents + currency >= 0,
            Account.diamonds + diamonds >= 0,
            Account.xp + xp >= 0,
        ),
        values={
            "balance_cents": Account.balance_cents + currency,
            "diamonds": Account.diamonds + diamonds,
            "xp": Account.xp + xp,
        },
    )
    account = read_account(db, account_id)
    if account is None:
        return not_found("account", account_id)
    if not applied:
        return Failure(ErrorCode.INSUFFICIENT_FUNDS, "adjustment would leave a negative balance")
    return Ok(to_snapshot(account))


def take_life(db: Session, account_id: int) -> Result[BalanceSnapshot]:
    applied = _apply(db, account_id, guards=(Account.lives > 0,), values={"lives": Account.lives - 1})
    account = read_account(db, account_id)
    if account is None:
        return not_found("account", account_id)
    if not applied:
        return Failure(ErrorCode.NO_LIVES_REMAINING, "no lives remaining")
    return Ok(to_snapshot(account))


def take_diamonds(db: Session, account_id: int, amount: int) -> Result[BalanceSnapshot]:
    if amount <= 0:
        return invalid("diamond amount must be positive")
    applied = _apply(
        db,
        account_id,
        guards=(Account.diamonds >= amount,),
        values={"diamonds": Account.diamonds - amount},
    )
    account = read_account(db, account_id)
    if account is None:
        return not_found("account", account_id)
    if not applied:
        return Failure(ErrorCode.INSUFFICIENT_DIAMONDS, f"{amount} diamonds required, {account.diamonds} available")
    return Ok(to_snapshot(account))


@atomic
def get_balances(db: Session, account_id: int) -> Result[BalanceSnapshot]:
    account = read_account(db, account_id)
    if account is None:
        return not_found("account", account_id)
    return Ok(to_snapshot(account))


@atomic
def adjust_balances(db: Session, account_id: int, deltas: BalanceDeltas) -> Result[BalanceSnapshot]:
    result = apply_deltas(db, account_id, currency=deltas.currency, diamonds=deltas.diamonds, xp=deltas.xp)
    if isinstance(result, Ok):
        logger.info(
            "Adjusted balances account_id=%s currency=%s diamonds=%s xp=%s",
            account_id,
            deltas.currency,
            deltas.diamonds,
            deltas.xp,
        )
    return result


@atomic
def decrement_life(db: Session, account_id: int) -> Result[BalanceSnapshot]:
    return take_life(db, account_id)


@atomic
def spend_diamonds(db: Session, account_id: int, amount: int) -> Result[BalanceSnapshot]:
    return take_diamonds(db, account_id, amount)


def _already_registered(db: Session, email: str, phone: Optional[str], tax_id: Optional[str]) -> bool:
    clauses = [Account.email == email]
    if phone:
        clauses.append(Account.phone == phone)
    if tax_id:
        clauses.append(Account.tax_id == tax_id)
    return db.execute(select(Account.id).where(or_(*clauses))).first() is not None


@atomic
def register_account(db: Session, request: RegisterAccountRequest) -> Result[BalanceSnapshot]:
    name = request.name.strip()
    email = request.email.strip().lower()
    if not name or not email:
        return invalid("name and email are required")
    if "@" not in email:
        return invalid("email is malformed")
    if _already_registered(db, email, request.phone, request.taxId):
        return Failure(ErrorCode.CONFLICT, "account already registered")

    account = Account(
        name=name,
        email=email,
        phone=request.phone or None,
        tax_id=request.taxId or None,
        balance_cents=settings.seed_balance_cents,
        diamonds=settings.seed_diamonds,
        lives=min(settings.seed_lives, settings.max_lives),
        xp=0,
        level=1,
    )
    db.add(account)
    try:
        db.flush()
    except IntegrityError as exc:
        # a concurrent registration won the unique email/phone/tax id
        logger.info("Registration lost unique race email=%s: %s", email, exc.orig)
        return Failure(ErrorCode.CONFLICT, "account already registered")
    logger.info("Registered account account_id=%s", account.id)
    return Ok(to_snapshot(account))


@atomic
def leaderboard(db: Session, limit: int | None = None) -> Result[List[LeaderboardEntry]]:
    limit = settings.leaderboard_limit if limit is None else limit
    if limit < 1:
        return invalid("limit must be at least 1")
    rows = db.execute(select(Account).order_by(Account.xp.desc(), Account.id).limit(limit)).scalars().all()
    return Ok([
        LeaderboardEntry(accountId=a.id, name=a.name, xp=a.xp, level=a.level, diamonds=a.diamonds)
        for a in rows
    ])
