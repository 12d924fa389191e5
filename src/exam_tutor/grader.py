"""Answer checking and mastery tracking for practice attempts."""
import re
from enum import Enum

from loguru import logger

from exam_tutor.attempts import get_owned_attempt
from exam_tutor.content import get_template
from exam_tutor.db import get_connection
from exam_tutor.errors import ValidationError
from exam_tutor.models import GradeResult

DEFAULT_TOLERANCE = 0.01

LEADING_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class GradeMode(str, Enum):
    GRADE = "grade"
    VIEW = "view"
    MASTER = "master"


def normalize_answer(answer) -> str:
    return str(answer).strip().lower()


def parse_number(text: str) -> float | None:
    """Parse the leading number of ``text``, or None if it doesn't start with one."""
    match = LEADING_NUMBER_RE.match(text.strip())
    return float(match.group(0)) if match else None


def answers_match(submitted, stored, answer_type: str | None, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    user_ans = normalize_answer(submitted)
    correct_ans = normalize_answer(stored)
    if user_ans == correct_ans:
        return True
    if answer_type != "numeric":
        return False
    user_num = parse_number(user_ans)
    correct_num = parse_number(correct_ans)
    if user_num is None or correct_num is None:
        return False
    return abs(user_num - correct_num) < tolerance


def record_practice_result(db_path: str, user_id: int, template_id: int, topic_id: int, correct: bool) -> None:
    """Count an attempt; mastery sticks once earned."""
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO user_practice_progress (user_id, question_template_id, topic_id, correct, attempts)
        VALUES (?, ?, ?, ?, 1)
        ON CONFLICT(user_id, question_template_id) DO UPDATE SET
            correct = MAX(correct, excluded.correct),
            attempts = attempts + 1""",
        (user_id, template_id, topic_id, int(correct)),
    )
    conn.commit()
    conn.close()


def get_practice_record(db_path: str, user_id: int, template_id: int) -> dict | None:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM user_practice_progress WHERE user_id = ? AND question_template_id = ?",
        (user_id, template_id),
    ).fetchone()
    conn.close()
    return dict(row) if row else None


def grade(db_path: str, user_id: int, attempt_id: str, answer=None,
          mode: GradeMode = GradeMode.GRADE, tolerance: float = DEFAULT_TOLERANCE) -> GradeResult:
    """Grade, reveal, or mark mastered a stored attempt.

    ``view`` never writes. ``master`` records success without looking at
    ``answer``. ``grade`` needs an answer and compares it against the
    stored one using the template's answer type.
    """
    try:
        mode = GradeMode(mode)
    except ValueError:
        raise ValidationError(f"Unknown grade mode: {mode}")
    attempt = get_owned_attempt(db_path, user_id, attempt_id)
    result = GradeResult(correct=False, correct_answer=attempt.correct_answer,
                         solution_steps=attempt.solution_steps)
    if mode == GradeMode.VIEW:
        return result

    if mode == GradeMode.MASTER:
        result.correct = True
    else:
        if answer is None:
            raise ValidationError("answer is required")
        template = get_template(db_path, attempt.template_id)
        answer_type = template.answer_type if template else None
        result.correct = answers_match(answer, attempt.correct_answer, answer_type, tolerance)

    record_practice_result(db_path, user_id, attempt.template_id, attempt.topic_id, result.correct)
    logger.info(f"User {user_id} {mode.value} attempt {attempt_id}: correct={result.correct}")
    return result
