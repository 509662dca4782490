import hmac
from fastapi import HTTPException, Header
from banked.config import settings


def require_gateway_token(authorization: str | None = Header(None, alias="Authorization")):
    """
    FastAPI dependency: only the identity gateway, which has already verified
    the player and resolved the account id, may call the ledger.
    Disabled when no BEARER_TOKEN is configured.
    """
    expected = settings.bearer_token
    if not expected:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not hmac.compare_digest(token.strip(), expected):
        raise HTTPException(status_code=401, detail="invalid gateway token")
