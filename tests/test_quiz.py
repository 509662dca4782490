import json

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker

from banked import ledger, questions, scoring
from banked.commands.load_questions import load_questions, parse_bank
from banked.results import ErrorCode, Failure, Ok


def test_fetch_batch_excludes_answered_questions(db_factory, make_account, make_questions):
    account_id = make_account()
    ids = make_questions("history", 12)
    answered = set(ids[:5])
    with db_factory() as db:
        for question_id in answered:
            assert isinstance(questions.register_answer(db, account_id, question_id, True), Ok)
        batch = questions.fetch_batch(db, account_id, "history", 10).value

    returned = [q.id for q in batch]
    assert len(returned) == 7
    assert len(set(returned)) == 7
    assert not answered & set(returned)
    assert all(len(q.options) == 4 for q in batch)


def test_fetch_batch_respects_batch_size_and_category(db_factory, make_account, make_questions):
    account_id = make_account()
    make_questions("history", 15)
    sports = set(make_questions("sports", 3))
    with db_factory() as db:
        batch = questions.fetch_batch(db, account_id, "history", 10).value
    assert len(batch) == 10
    assert all(q.category == "history" for q in batch)
    assert not sports & {q.id for q in batch}


def test_fetch_batch_empty_pool_after_all_answered(db_factory, make_account, make_questions):
    account_id = make_account()
    ids = make_questions("science", 3)
    with db_factory() as db:
        for question_id in ids:
            questions.register_answer(db, account_id, question_id, False)
        result = questions.fetch_batch(db, account_id, "science")
    assert isinstance(result, Failure)
    assert result.code == ErrorCode.EMPTY_POOL


def test_fetch_batch_is_per_account(db_factory, make_account, make_questions):
    first = make_account()
    second = make_account()
    ids = make_questions("music", 2)
    with db_factory() as db:
        for question_id in ids:
            questions.register_answer(db, first, question_id, True)
        assert questions.fetch_batch(db, first, "music").code == ErrorCode.EMPTY_POOL
        assert len(questions.fetch_batch(db, second, "music").value) == 2


def test_fetch_batch_validates_input(db_factory, make_account, make_questions):
    account_id = make_account()
    make_questions("history", 2)
    with db_factory() as db:
        assert questions.fetch_batch(db, account_id, "history", 0).code == ErrorCode.VALIDATION_ERROR
        assert questions.fetch_batch(db, account_id, "history", 51).code == ErrorCode.VALIDATION_ERROR
        assert questions.fetch_batch(db, 999, "history").code == ErrorCode.NOT_FOUND


def test_register_answer_duplicate_keeps_first_answer(db_factory, app_module, make_account, make_questions):
    _, database, models = app_module
    account_id = make_account()
    (question_id,) = make_questions("history", 1)
    with db_factory() as db:
        first = questions.register_answer(db, account_id, question_id, True).value
        again = questions.register_answer(db, account_id, question_id, False).value
    assert first.alreadyRecorded is False
    assert again.alreadyRecorded is True
    assert again.wasCorrect is True

    with database.SessionLocal() as db:
        rows = db.query(models.AnsweredQuestion).all()
        assert len(rows) == 1
        assert rows[0].was_correct is True


def test_register_answer_unknown_question(db_factory, make_account):
    account_id = make_account()
    with db_factory() as db:
        result = questions.register_answer(db, account_id, 12345, True)
    assert result.code == ErrorCode.NOT_FOUND


def test_extra_question_charges_then_serves_answered_question(db_factory, make_account, make_questions):
    account_id = make_account(diamonds=25)
    (question_id,) = make_questions("geo", 1)
    with db_factory() as db:
        questions.register_answer(db, account_id, question_id, True)
        result = questions.extra_question(db, account_id, "geo")
    assert result.value.question.id == question_id
    assert result.value.diamondsRemaining == 15


def test_extra_question_without_diamonds_serves_nothing(db_factory, make_account, make_questions):
    account_id = make_account(diamonds=9)
    make_questions("geo", 3)
    with db_factory() as db:
        result = questions.extra_question(db, account_id, "geo")
        snapshot = ledger.get_balances(db, account_id).value
    assert result.code == ErrorCode.INSUFFICIENT_DIAMONDS
    assert snapshot.diamonds == 9


def test_extra_question_empty_category_rolls_back_debit(db_factory, make_account):
    account_id = make_account(diamonds=10)
    with db_factory() as db:
        result = questions.extra_question(db, account_id, "nothing-here")
        snapshot = ledger.get_balances(db, account_id).value
    assert result.code == ErrorCode.EMPTY_POOL
    assert snapshot.diamonds == 10


def test_list_categories_counts_questions(db_factory, make_questions):
    make_questions("history", 2)
    make_questions("art", 1)
    with db_factory() as db:
        summary = questions.list_categories(db).value
    assert [(c.category, c.questionCount) for c in summary] == [("art", 1), ("history", 2)]


def test_record_score_awards_diamonds_and_xp(db_factory, app_module, make_account):
    _, database, models = app_module
    account_id = make_account(diamonds=1, xp=10)
    with db_factory() as db:
        result = scoring.record_score(db, account_id, "runner", 250)
        snapshot = ledger.get_balances(db, account_id).value
    assert result.value.diamondsAwarded == 2
    assert result.value.newXp == 260
    assert snapshot.diamonds == 3
    assert snapshot.xp == 260

    with database.SessionLocal() as db:
        records = db.query(models.ScoreRecord).all()
        assert len(records) == 1
        assert records[0].points == 250
        assert records[0].game_id == "runner"


def test_record_score_clamps_negative_points(db_factory, make_account):
    account_id = make_account(xp=40)
    with db_factory() as db:
        result = scoring.record_score(db, account_id, "runner", -300)
    assert result.value.diamondsAwarded == 0
    assert result.value.newXp == 40


def test_record_score_levels_up(db_factory, make_account):
    account_id = make_account(xp=900)
    with db_factory() as db:
        result = scoring.record_score(db, account_id, "quiz", 2150)
        snapshot = ledger.get_balances(db, account_id).value
    assert result.value.level == 4
    assert snapshot.level == 4


def test_record_score_unknown_account_leaves_no_history(db_factory, app_module):
    _, database, models = app_module
    with db_factory() as db:
        result = scoring.record_score(db, 555, "runner", 100)
    assert result.code == ErrorCode.NOT_FOUND
    with database.SessionLocal() as db:
        assert db.query(models.ScoreRecord).count() == 0


def test_record_score_balance_failure_discards_history(db_factory, app_module, make_account, monkeypatch):
    _, database, models = app_module
    account_id = make_account()

    def broken_apply(db, account_id, **deltas):
        raise OperationalError("UPDATE accounts", {}, Exception("connection lost"))

    monkeypatch.setattr("banked.scoring.apply_deltas", broken_apply)
    with db_factory() as db:
        result = scoring.record_score(db, account_id, "runner", 250)
    assert result.code == ErrorCode.TRANSACTION_FAILURE

    with database.SessionLocal() as db:
        assert db.query(models.ScoreRecord).count() == 0
        account = db.get(models.Account, account_id)
        assert account.diamonds == 0
        assert account.xp == 0


def test_record_score_requires_game_id(db_factory, make_account):
    account_id = make_account()
    with db_factory() as db:
        assert scoring.record_score(db, account_id, " ", 10).code == ErrorCode.VALIDATION_ERROR


def test_parse_bank_accepts_index_or_text_answers():
    parsed, errors = parse_bank([
        {"category": "art", "question": "Q1", "options": ["a", "b", "c", "d"], "answer": 2},
        {"category": "art", "question": "Q2", "options": ["a", "b", "c", "d"], "answer": "d"},
        {"category": "art", "question": "Q3", "options": ["a", "b"], "answer": 0},
        {"category": "", "question": "Q4", "options": ["a", "b", "c", "d"], "answer": 0},
    ])
    assert [p["correct_answer_index"] for p in parsed] == [2, 3]
    assert len(errors) == 2
    assert errors[0].startswith("entry 2")


def test_load_questions_imports_bank(tmp_path, db_factory, make_account):
    bank = tmp_path / "questions.json"
    bank.write_text(json.dumps([
        {"category": "art", "question": "Who painted it?", "options": ["a", "b", "c", "d"], "answer": "b"},
        {"category": "art", "question": "When?", "options": ["1", "2", "3", "4"], "answer": 0},
    ]))
    assert load_questions(str(bank)) == 0

    account_id = make_account()
    with db_factory() as db:
        batch = questions.fetch_batch(db, account_id, "art").value
    assert sorted(q.text for q in batch) == ["When?", "Who painted it?"]


def test_load_questions_rejects_invalid_bank(tmp_path, db_factory):
    bank = tmp_path / "questions.json"
    bank.write_text(json.dumps([{"category": "art", "question": "Q", "options": [], "answer": 0}]))
    assert load_questions(str(bank)) == 1
    with db_factory() as db:
        assert questions.list_categories(db).value == []


@pytest.fixture
def fk_session_factory(app_module):
    """
    Sessions on the test database with foreign keys enforced, as on PostgreSQL.
    """
    _, database, _ = app_module
    fk_engine = create_engine(database.engine.url, connect_args={"check_same_thread": False, "timeout": 30})

    @event.listens_for(fk_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    yield sessionmaker(bind=fk_engine, autoflush=False, expire_on_commit=False)
    fk_engine.dispose()


def test_record_score_unknown_account_with_foreign_keys(fk_session_factory, app_module):
    _, _, models = app_module
    with fk_session_factory() as db:
        with pytest.raises(IntegrityError):
            db.add(models.ScoreRecord(account_id=555, game_id="runner", points=1))
            db.flush()
        db.rollback()

        result = scoring.record_score(db, 555, "runner", 100)
        assert isinstance(result, Failure)
        assert result.code == ErrorCode.NOT_FOUND
        assert db.query(models.ScoreRecord).count() == 0
