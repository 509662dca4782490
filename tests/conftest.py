import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# settings are read once at import time, so point them at a disposable DB first
_DB_DIR = tempfile.mkdtemp(prefix="banked-tests-")
os.environ["DB_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["BEARER_TOKEN"] = ""
os.environ["SEED_LIVES"] = "5"
os.environ["MAX_LIVES"] = "5"


@pytest.fixture(scope="function")
def app_module():
    """
    Fresh schema for every test; returns (main, database, models).
    """
    import banked.database as database
    import banked.models as models
    import banked.main as main

    models.Base.metadata.drop_all(bind=database.engine)
    models.Base.metadata.create_all(bind=database.engine)
    main.app.dependency_overrides.clear()
    return main, database, models


@pytest.fixture
def db_factory(app_module):
    _, database, _ = app_module
    return database.SessionLocal


@pytest.fixture
def make_account(app_module):
    """
    Insert an account with explicit balances and return its id.
    """
    _, database, models = app_module
    counter = {"n": 0}

    def _make(balance_cents=0, diamonds=0, lives=5, xp=0, level=1):
        counter["n"] += 1
        with database.SessionLocal() as db:
            account = models.Account(
                name=f"player-{counter['n']}",
                email=f"player-{counter['n']}@example.com",
                balance_cents=balance_cents,
                diamonds=diamonds,
                lives=lives,
                xp=xp,
                level=level,
            )
            db.add(account)
            db.commit()
            return account.id

    return _make


@pytest.fixture
def make_questions(app_module):
    _, database, models = app_module

    def _make(category, count):
        with database.SessionLocal() as db:
            rows = [
                models.Question(
                    category=category,
                    text=f"{category} question {i}",
                    options=["a", "b", "c", "d"],
                    correct_answer_index=i % 4,
                )
                for i in range(count)
            ]
            db.add_all(rows)
            db.commit()
            return [row.id for row in rows]

    return _make
