import hashlib
import json

from fastapi import HTTPException

from banked.results import ErrorCode, Failure, Ok, Result

FAILURE_STATUS = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.EMPTY_POOL: 404,
    ErrorCode.INSUFFICIENT_FUNDS: 409,
    ErrorCode.INSUFFICIENT_DIAMONDS: 409,
    ErrorCode.NO_LIVES_REMAINING: 409,
    ErrorCode.CONFLICT: 409,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.TRANSACTION_FAILURE: 503,
}


def hash_request(body: dict) -> str:
    return hashlib.sha256(json.dumps(body, sort_keys=True).encode()).hexdigest()


def unwrap(result: Result):
    """
    Return the success payload, or raise the HTTP error matching the failure code.
    """
    if isinstance(result, Ok):
        return result.value
    failure: Failure = result
    raise HTTPException(status_code=FAILURE_STATUS[failure.code], detail=failure.as_detail())
