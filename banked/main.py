from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Query
from fastapi.openapi.docs import get_swagger_ui_html
from sqlalchemy.orm import Session

from banked import diamond_spend, ledger, life_gate, prize_pool, questions, scoring, withdrawals
from banked.database import SessionLocal, engine, get_db
from banked.helpers import unwrap
from banked.logging_config import get_logger
from banked.models import Base
from banked.schemas import (
    AnswerRecorded,
    AnswerRequest,
    BalanceDeltas,
    BalanceSnapshot,
    CategorySummary,
    ExtraQuestionRequest,
    ExtraQuestionResult,
    LeaderboardEntry,
    PrizePoolState,
    QuestionView,
    RegisterAccountRequest,
    RetryPurchased,
    ScoreRequest,
    ScoreResult,
    SessionStarted,
    WithdrawalRequestBody,
    WithdrawalResult,
)
from banked.security import require_gateway_token


logger = get_logger(__name__)

Base.metadata.create_all(bind=engine)
app = FastAPI(title="Banked Ledger")

@app.on_event("startup")
def startup_event():
    with SessionLocal() as db:
        pool = unwrap(prize_pool.ensure_pool(db))
    logger.info("Banked ledger ready prize_pool_total=%s participants=%s", pool.total, pool.participants)

@app.post("/accounts", response_model=BalanceSnapshot, status_code=201)
def register_account_route(
    request: RegisterAccountRequest,
    _auth=Depends(require_gateway_token),
    db: Session = Depends(get_db),
):
    return unwrap(ledger.register_account(db, request))

@app.get("/accounts/{account_id}/balances", response_model=BalanceSnapshot)
def balances_route(account_id: int, _auth=Depends(require_gateway_token), db: Session = Depends(get_db)):
    return unwrap(ledger.get_balances(db, account_id))

@app.post("/accounts/{account_id}/adjustments", response_model=BalanceSnapshot)
def adjust_route(
    account_id: int,
    deltas: BalanceDeltas,
    _auth=Depends(require_gateway_token),
    db: Session = Depends(get_db),
):
    return unwrap(ledger.adjust_balances(db, account_id, deltas))

@app.post("/accounts/{account_id}/sessions", response_model=SessionStarted)
def start_session_route(account_id: int, _auth=Depends(require_gateway_token), db: Session = Depends(get_db)):
    return unwrap(life_gate.start_session(db, account_id))

@app.post("/accounts/{account_id}/retries", response_model=RetryPurchased)
def retry_route(account_id: int, _auth=Depends(require_gateway_token), db: Session = Depends(get_db)):
    return unwrap(diamond_spend.spend_for_retry(db, account_id))

@app.post("/accounts/{account_id}/scores", response_model=ScoreResult)
def score_route(
    account_id: int,
    request: ScoreRequest,
    _auth=Depends(require_gateway_token),
    db: Session = Depends(get_db),
):
    return unwrap(scoring.record_score(db, account_id, request.gameId, request.points))

@app.get("/accounts/{account_id}/questions", response_model=List[QuestionView])
def questions_route(
    account_id: int,
    category: str,
    batch_size: Optional[int] = Query(None, alias="batchSize"),
    _auth=Depends(require_gateway_token),
    db: Session = Depends(get_db),
):
    return unwrap(questions.fetch_batch(db, account_id, category, batch_size))

@app.post("/accounts/{account_id}/questions/extra", response_model=ExtraQuestionResult)
def extra_question_route(
    account_id: int,
    request: ExtraQuestionRequest,
    _auth=Depends(require_gateway_token),
    db: Session = Depends(get_db),
):
    return unwrap(questions.extra_question(db, account_id, request.category))

@app.post("/accounts/{account_id}/answers", response_model=AnswerRecorded)
def answer_route(
    account_id: int,
    request: AnswerRequest,
    _auth=Depends(require_gateway_token),
    db: Session = Depends(get_db),
):
    return unwrap(questions.register_answer(db, account_id, request.questionId, request.wasCorrect))

@app.post("/accounts/{account_id}/prize-pool/entries", response_model=PrizePoolState)
def prize_pool_entry_route(account_id: int, _auth=Depends(require_gateway_token), db: Session = Depends(get_db)):
    return unwrap(prize_pool.enter(db, account_id))

@app.post("/accounts/{account_id}/withdrawals", response_model=WithdrawalResult, status_code=201)
def withdrawal_route(
    account_id: int,
    request: WithdrawalRequestBody,
    _auth=Depends(require_gateway_token),
    db: Session = Depends(get_db),
    idempotency_key: str | None = Header(None),
):
    return unwrap(withdrawals.request_withdrawal(db, account_id, request, idempotency_key))

@app.get("/prize-pool", response_model=PrizePoolState)
def prize_pool_route(_auth=Depends(require_gateway_token), db: Session = Depends(get_db)):
    return unwrap(prize_pool.get_pool(db))

@app.get("/leaderboard", response_model=List[LeaderboardEntry])
def leaderboard_route(
    limit: Optional[int] = Query(None, ge=1, le=100),
    _auth=Depends(require_gateway_token),
    db: Session = Depends(get_db),
):
    return unwrap(ledger.leaderboard(db, limit))

@app.get("/categories", response_model=List[CategorySummary])
def categories_route(_auth=Depends(require_gateway_token), db: Session = Depends(get_db)):
    return unwrap(questions.list_categories(db))

@app.get("/swagger", include_in_schema=False)
async def swagger_ui():
    return get_swagger_ui_html(openapi_url=str(app.openapi_url), title="Banked Ledger - Swagger UI")

@app.get("/health")
async def health():
    return {"status": "ok"}
