from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from banked.models import IdempotencyKey
from banked.results import ErrorCode, Failure, Ok, Result


def find_idempotent_response(db: Session, key: str, body_hash: str) -> Result[Optional[dict]]:
    existing = db.execute(select(IdempotencyKey).filter_by(key=key)).scalar_one_or_none()
    if existing:
        if existing.request_hash != body_hash:
            return Failure(ErrorCode.CONFLICT, "idempotency key reused with a different request")
        return Ok(existing.response_body)
    return Ok(None)


def store_idempotent_response(db: Session, key: str, body_hash: str, response_body: dict) -> dict:
    # flushed with the caller's transaction, never committed on its own
    db.add(IdempotencyKey(key=key, request_hash=body_hash, response_body=response_body))
    db.flush()
    return response_body
