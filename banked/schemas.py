from pydantic import BaseModel, Field
from typing import List, Optional


class BalanceSnapshot(BaseModel):
    accountId: int
    balanceCents: int
    diamonds: int
    lives: int
    xp: int
    level: int

class RegisterAccountRequest(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    taxId: Optional[str] = None

class BalanceDeltas(BaseModel):
    currency: int = 0  # cents
    diamonds: int = 0
    xp: int = 0

class LeaderboardEntry(BaseModel):
    accountId: int
    name: str
    xp: int
    level: int
    diamonds: int

class SessionStarted(BaseModel):
    livesRemaining: int

class RetryPurchased(BaseModel):
    diamondsRemaining: int

class ScoreRequest(BaseModel):
    gameId: str = Field(..., min_length=1)
    points: int

class ScoreResult(BaseModel):
    diamondsAwarded: int
    newXp: int
    level: int

class QuestionView(BaseModel):
    id: int
    category: str
    text: str
    options: List[str]
    correctAnswerIndex: int

class ExtraQuestionRequest(BaseModel):
    category: str

class ExtraQuestionResult(BaseModel):
    question: QuestionView
    diamondsRemaining: int

class AnswerRequest(BaseModel):
    questionId: int
    wasCorrect: bool

class AnswerRecorded(BaseModel):
    questionId: int
    wasCorrect: bool
    alreadyRecorded: bool

class CategorySummary(BaseModel):
    category: str
    questionCount: int

class PrizePoolState(BaseModel):
    total: int
    participants: int

class WithdrawalRequestBody(BaseModel):
    amountCents: int
    payoutKey: str

class WithdrawalResult(BaseModel):
    withdrawalId: int
    status: str
    amountCents: int
    balanceCents: int
