import json
import sys
from pathlib import Path
from typing import List, Tuple

from banked.database import SessionLocal, engine
from banked.logging_config import get_logger
from banked.models import Base
from banked.questions import add_questions
from banked.results import Ok

logger = get_logger(__name__)


def parse_question(raw: dict) -> dict:
    """
    Normalise one question bank entry.

    ``answer`` may be the option index or the option text.
    Raises ValueError when the entry is unusable.
    """
    category = str(raw.get("category") or "").strip()
    text = str(raw.get("question") or "").strip()
    options = raw.get("options")
    if not category or not text:
        raise ValueError("category and question are required")
    if not isinstance(options, list) or len(options) != 4:
        raise ValueError("exactly four options are required")
    options = [str(o) for o in options]
    answer = raw.get("answer")
    if isinstance(answer, int) and not isinstance(answer, bool):
        index = answer
    elif isinstance(answer, str) and answer in options:
        index = options.index(answer)
    else:
        raise ValueError(f"answer {answer!r} does not match any option")
    if not 0 <= index < 4:
        raise ValueError(f"answer index {index} out of range")
    return {"category": category, "text": text, "options": options, "correct_answer_index": index}


def parse_bank(entries: list) -> Tuple[List[dict], List[str]]:
    parsed, errors = [], []
    for position, raw in enumerate(entries):
        try:
            parsed.append(parse_question(raw))
        except (ValueError, AttributeError) as exc:
            errors.append(f"entry {position}: {exc}")
    return parsed, errors


def load_questions(path: str) -> int:
    entries = json.loads(Path(path).read_text(encoding="utf-8"))
    parsed, errors = parse_bank(entries)
    if errors:
        for error in errors:
            logger.error("Rejected question %s", error)
        return 1
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        result = add_questions(db, parsed)
    if not isinstance(result, Ok):
        logger.error("Question import failed: %s", result.message)
        return 1
    logger.info("Imported %s questions from %s", result.value, path)
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: python -m banked.commands.load_questions <questions.json>", file=sys.stderr)
        raise SystemExit(2)
    raise SystemExit(load_questions(sys.argv[1]))
