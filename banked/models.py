from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from banked.config import WithdrawalStatus
from banked.database import Base


class Account(Base):
    __tablename__ = "accounts"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, unique=True, nullable=True)
    tax_id = Column(String, unique=True, nullable=True)
    balance_cents = Column(Integer, nullable=False, default=0)
    diamonds = Column(Integer, nullable=False, default=0)
    lives = Column(Integer, nullable=False, default=0)
    xp = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_account_balance"),
        CheckConstraint("diamonds >= 0", name="ck_account_diamonds"),
        CheckConstraint("lives >= 0", name="ck_account_lives"),
        CheckConstraint("xp >= 0", name="ck_account_xp"),
        CheckConstraint("level >= 1", name="ck_account_level"),
    )

class Question(Base):
    __tablename__ = "questions"
    id = Column(Integer, primary_key=True)
    category = Column(String, index=True, nullable=False)
    text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)  # exactly four strings
    correct_answer_index = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (
        CheckConstraint("correct_answer_index BETWEEN 0 AND 3", name="ck_question_answer"),
    )

class ScoreRecord(Base):
    __tablename__ = "score_records"
    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)
    game_id = Column(String, nullable=False)
    points = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class AnsweredQuestion(Base):
    __tablename__ = "answered_questions"
    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    was_correct = Column(Boolean, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (UniqueConstraint("account_id", "question_id", name="uq_account_question"),)

class WithdrawalRequest(Base):
    __tablename__ = "withdrawal_requests"
    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), index=True, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    payout_key = Column(String, nullable=False)
    status = Column(String, nullable=False, default=WithdrawalStatus.PENDING.value)  # pending|approved|rejected
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_withdrawal_amount"),
        CheckConstraint("status IN ('pending','approved','rejected')", name="ck_withdrawal_status"),
    )

class PrizePool(Base):
    __tablename__ = "prize_pool"
    id = Column(Integer, primary_key=True)
    total = Column(Integer, nullable=False, default=0)
    participants = Column(Integer, nullable=False, default=0)

class IdempotencyKey(Base):
    __tablename__ = "idempotency_keys"
    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, index=True, nullable=False)
    request_hash = Column(String, nullable=False)
    response_body = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
