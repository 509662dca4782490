from typing import Optional

from sqlalchemy.orm import Session

from banked.config import WithdrawalStatus
from banked.helpers import hash_request
from banked.idempotency import find_idempotent_response, store_idempotent_response
from banked.ledger import apply_deltas
from banked.logging_config import get_logger
from banked.models import WithdrawalRequest
from banked.results import Ok, Result, invalid
from banked.schemas import WithdrawalRequestBody, WithdrawalResult
from banked.unit_of_work import atomic

logger = get_logger(__name__)


@atomic
def request_withdrawal(
    db: Session,
    account_id: int,
    request: WithdrawalRequestBody,
    idempotency_key: Optional[str] = None,
) -> Result[WithdrawalResult]:
    """
    Debit the currency balance and queue a pending withdrawal.

    The debit and the withdrawal row commit together. Approval or rejection
    happens later in the back office. With an idempotency key, a repeated
    identical request returns the first response without debiting again.
    """
    if request.amountCents <= 0:
        return invalid("amountCents must be positive")
    payout_key = request.payoutKey.strip()
    if not payout_key:
        return invalid("payoutKey is required")

    body_hash = None
    if idempotency_key:
        body_hash = hash_request({"accountId": account_id, **request.model_dump()})
        stored = find_idempotent_response(db, idempotency_key, body_hash)
        if not isinstance(stored, Ok):
            return stored
        if stored.value is not None:
            logger.info("Replayed withdrawal account_id=%s idempotency_key=%s", account_id, idempotency_key)
            return Ok(WithdrawalResult(**stored.value))

    debited = apply_deltas(db, account_id, currency=-request.amountCents)
    if not isinstance(debited, Ok):
        return debited

    withdrawal = WithdrawalRequest(
        account_id=account_id,
        amount_cents=request.amountCents,
        payout_key=payout_key,
        status=WithdrawalStatus.PENDING.value,
    )
    db.add(withdrawal)
    db.flush()

    response = WithdrawalResult(
        withdrawalId=withdrawal.id,
        status=withdrawal.status,
        amountCents=withdrawal.amount_cents,
        balanceCents=debited.value.balanceCents,
    )
    if idempotency_key:
        store_idempotent_response(db, idempotency_key, body_hash, response.model_dump())
    logger.info(
        "Withdrawal requested account_id=%s withdrawal_id=%s amount_cents=%s status=%s",
        account_id,
        withdrawal.id,
        withdrawal.amount_cents,
        withdrawal.status,
    )
    return Ok(response)
