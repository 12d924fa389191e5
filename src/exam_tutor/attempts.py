"""Ledger of generated practice questions.

Each generated question is stored once, with its answer and worked
solution, so grading reads back the exact instance the user saw. Rows are
never updated.
"""
import uuid
from datetime import datetime

from loguru import logger

from exam_tutor.db import get_connection
from exam_tutor.errors import AuthorizationError, NotFoundError, ValidationError
from exam_tutor.models import PracticeAttempt, attempt_from_row


def create_attempt(db_path: str, user_id: int, template_id: int, topic_id: int,
                   question_text: str, correct_answer: str, solution_steps: str) -> str:
    attempt_id = uuid.uuid4().hex
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO practice_attempts
        (id, user_id, template_id, topic_id, question_text, correct_answer, solution_steps, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (attempt_id, user_id, template_id, topic_id, question_text, correct_answer, solution_steps,
         datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()
    logger.debug(f"Attempt {attempt_id} for user {user_id} on template {template_id}")
    return attempt_id


def get_attempt(db_path: str, attempt_id: str) -> PracticeAttempt | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM practice_attempts WHERE id = ?", (attempt_id,)).fetchone()
    conn.close()
    return attempt_from_row(row) if row else None


def get_owned_attempt(db_path: str, user_id: int, attempt_id: str) -> PracticeAttempt:
    """Fetch an attempt for its owner; anyone else gets an authorization error."""
    if not attempt_id:
        raise ValidationError("attempt_id is required")
    attempt = get_attempt(db_path, attempt_id)
    if attempt is None:
        raise NotFoundError("Attempt", attempt_id)
    if attempt.user_id != user_id:
        logger.warning(f"User {user_id} tried to read attempt {attempt_id} owned by {attempt.user_id}")
        raise AuthorizationError()
    return attempt


def list_attempts(db_path: str, user_id: int, topic_id: int | None = None, limit: int = 20) -> list[PracticeAttempt]:
    conn = get_connection(db_path)
    if topic_id is None:
        rows = conn.execute(
            "SELECT * FROM practice_attempts WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
    else:
        rows = conn.execute(
            """SELECT * FROM practice_attempts WHERE user_id = ? AND topic_id = ?
            ORDER BY created_at DESC LIMIT ?""",
            (user_id, topic_id, limit),
        ).fetchall()
    conn.close()
    return [attempt_from_row(r) for r in rows]
