from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from banked.config import settings
from banked.ledger import read_account, take_diamonds
from banked.logging_config import get_logger
from banked.models import AnsweredQuestion, Question
from banked.results import ErrorCode, Failure, Ok, Result, invalid, not_found
from banked.schemas import AnswerRecorded, CategorySummary, ExtraQuestionResult, QuestionView
from banked.unit_of_work import atomic

logger = get_logger(__name__)


def to_view(question: Question) -> QuestionView:
    return QuestionView(
        id=question.id,
        category=question.category,
        text=question.text,
        options=list(question.options),
        correctAnswerIndex=question.correct_answer_index,
    )


def _empty_pool(category: str) -> Failure:
    return Failure(ErrorCode.EMPTY_POOL, f"no questions left in category {category!r}")


@atomic
def fetch_batch(db: Session, account_id: int, category: str, batch_size: int | None = None) -> Result[List[QuestionView]]:
    """
    Draw up to ``batch_size`` random questions the account has not answered yet.

    Questions are sampled without replacement. EMPTY_POOL once every question
    in the category has been answered.
    """
    batch_size = settings.question_batch_size if batch_size is None else batch_size
    if not 1 <= batch_size <= settings.max_question_batch_size:
        return invalid(f"batchSize must be between 1 and {settings.max_question_batch_size}")
    if not category or not category.strip():
        return invalid("category is required")
    if read_account(db, account_id) is None:
        return not_found("account", account_id)

    answered = select(AnsweredQuestion.question_id).where(AnsweredQuestion.account_id == account_id)
    stmt = (
        select(Question)
        .where(Question.category == category, Question.id.not_in(answered))
        .order_by(func.random())
        .limit(batch_size)
    )
    questions = db.execute(stmt).scalars().all()
    if not questions:
        return _empty_pool(category)
    logger.info("Fetched questions account_id=%s category=%s count=%s", account_id, category, len(questions))
    return Ok([to_view(q) for q in questions])


@atomic
def extra_question(db: Session, account_id: int, category: str, cost: int | None = None) -> Result[ExtraQuestionResult]:
    """
    Sell one extra question for diamonds.

    The debit runs first and shares the transaction with the draw, so no
    question leaves unpaid and an empty category rolls the debit back.
    Already answered questions are eligible here.
    """
    cost = settings.extra_question_cost if cost is None else cost
    if not category or not category.strip():
        return invalid("category is required")
    paid = take_diamonds(db, account_id, cost)
    if not isinstance(paid, Ok):
        return paid

    stmt = select(Question).where(Question.category == category).order_by(func.random()).limit(1)
    question = db.execute(stmt).scalar_one_or_none()
    if question is None:
        return _empty_pool(category)
    logger.info(
        "Sold extra question account_id=%s category=%s question_id=%s cost=%s",
        account_id,
        category,
        question.id,
        cost,
    )
    return Ok(ExtraQuestionResult(question=to_view(question), diamondsRemaining=paid.value.diamonds))


@atomic
def register_answer(db: Session, account_id: int, question_id: int, was_correct: bool) -> Result[AnswerRecorded]:
    if read_account(db, account_id) is None:
        return not_found("account", account_id)
    if db.get(Question, question_id) is None:
        return not_found("question", question_id)

    existing = db.execute(
        select(AnsweredQuestion).where(
            AnsweredQuestion.account_id == account_id,
            AnsweredQuestion.question_id == question_id,
        )
    ).scalar_one_or_none()
    if existing:
        # first answer wins; the unique pair is never rewritten
        return Ok(AnswerRecorded(questionId=question_id, wasCorrect=existing.was_correct, alreadyRecorded=True))

    db.add(AnsweredQuestion(account_id=account_id, question_id=question_id, was_correct=was_correct))
    db.flush()
    logger.info("Registered answer account_id=%s question_id=%s correct=%s", account_id, question_id, was_correct)
    return Ok(AnswerRecorded(questionId=question_id, wasCorrect=was_correct, alreadyRecorded=False))


@atomic
def list_categories(db: Session) -> Result[List[CategorySummary]]:
    rows = db.execute(
        select(Question.category, func.count(Question.id)).group_by(Question.category).order_by(Question.category)
    ).all()
    return Ok([CategorySummary(category=category, questionCount=count) for category, count in rows])


@atomic
def add_questions(db: Session, questions: List[dict]) -> Result[int]:
    for item in questions:
        db.add(Question(
            category=item["category"],
            text=item["text"],
            options=list(item["options"]),
            correct_answer_index=item["correct_answer_index"],
        ))
    db.flush()
    logger.info("Loaded %s questions", len(questions))
    return Ok(len(questions))
