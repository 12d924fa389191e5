"""Request boundary between the front end and the domain modules.

Every operation takes the database path and a bearer token, resolves the
caller, and returns plain data. ``handle`` wraps a call and converts
errors into ``(status, payload)`` the way an HTTP layer would.
"""
import random
from dataclasses import asdict, is_dataclass
from typing import Any, Callable

from loguru import logger

from exam_tutor import attempts, cheatsheet, content, grader, progress
from exam_tutor.auth import authenticate, require_admin
from exam_tutor.config import get_settings
from exam_tutor.errors import NotFoundError, TutorError, ValidationError
from exam_tutor.generator import generate
from exam_tutor.grader import GradeMode
from exam_tutor.importer import import_file
from exam_tutor.models import Topic, User


def to_payload(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, dict):
        return {k: to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(v) for v in value]
    return value


def handle(fn: Callable, *args, **kwargs) -> tuple[int, Any]:
    try:
        return 200, to_payload(fn(*args, **kwargs))
    except TutorError as e:
        return e.status, e.to_dict()
    except Exception:
        logger.exception(f"Unhandled error in {fn.__name__}")
        return 500, {"code": "INTERNAL_ERROR", "message": "Internal server error"}


def _admin(db_path: str, token: str) -> User:
    user = authenticate(db_path, token)
    require_admin(user)
    return user


def _open_topic(db_path: str, topic_id: int) -> Topic:
    topic = content.require_topic(db_path, topic_id)
    if topic.course_id is not None:
        course = content.get_course(db_path, topic.course_id)
        if course is not None:
            content.ensure_course_unlocked(course)
    return topic


# --- Browsing ---


def list_courses(db_path: str, token: str) -> list:
    authenticate(db_path, token)
    return content.list_courses(db_path)


def list_topics(db_path: str, token: str, course_id: int | None = None) -> list:
    user = authenticate(db_path, token)
    return progress.get_progress_overview(db_path, user.id, course_id)["topics"]


def get_topic_detail(db_path: str, token: str, topic_id: int):
    user = authenticate(db_path, token)
    return progress.get_topic_progress(db_path, user.id, topic_id)


# --- Learn ---


def get_learn_session(db_path: str, token: str, topic_id: int) -> dict:
    user = authenticate(db_path, token)
    _open_topic(db_path, topic_id)
    return progress.get_learn_session(db_path, user.id, topic_id)


def complete_card(db_path: str, token: str, topic_id: int, card_id: int) -> dict:
    user = authenticate(db_path, token)
    _open_topic(db_path, topic_id)
    progress.mark_card_complete(db_path, user.id, card_id, topic_id)
    return {"success": True}


# --- Practice ---


def get_practice_info(db_path: str, token: str, topic_id: int) -> dict:
    user = authenticate(db_path, token)
    return progress.get_practice_info(db_path, user.id, topic_id)


def generate_question(db_path: str, token: str, topic_id: int, template_id: int | None = None) -> dict:
    """Generate and store a question; only the question text goes back."""
    user = authenticate(db_path, token)
    _open_topic(db_path, topic_id)
    template = None
    if template_id is not None:
        template = content.get_template(db_path, template_id)
        if template is not None and template.topic_id != topic_id:
            template = None
    if template is None:
        templates = content.list_templates(db_path, topic_id)
        if not templates:
            raise NotFoundError("Question template")
        template = random.choice(templates)

    generated = generate(template)
    attempt_id = attempts.create_attempt(
        db_path, user.id, template.id, topic_id,
        generated.question_text, generated.correct_answer, generated.solution_steps,
    )
    return {"attempt_id": attempt_id, "template_id": template.id, "question_text": generated.question_text}


def grade_attempt(db_path: str, token: str, attempt_id: str, answer) -> Any:
    user = authenticate(db_path, token)
    return grader.grade(db_path, user.id, attempt_id, answer, GradeMode.GRADE,
                        tolerance=get_settings().numeric_tolerance)


def view_answer(db_path: str, token: str, attempt_id: str) -> Any:
    user = authenticate(db_path, token)
    return grader.grade(db_path, user.id, attempt_id, mode=GradeMode.VIEW)


def mark_mastered(db_path: str, token: str, attempt_id: str) -> Any:
    user = authenticate(db_path, token)
    return grader.grade(db_path, user.id, attempt_id, mode=GradeMode.MASTER)


def get_progress_overview(db_path: str, token: str, course_id: int | None = None) -> dict:
    user = authenticate(db_path, token)
    return progress.get_progress_overview(db_path, user.id, course_id)


# --- Cheat sheet ---


def list_cheat_sheet(db_path: str, token: str, course_id: int) -> list:
    user = authenticate(db_path, token)
    return cheatsheet.get_cheat_sheet(db_path, user.id, course_id)


def add_cheat_sheet_entry(db_path: str, token: str, topic_id: int, formula: str, label: str):
    user = authenticate(db_path, token)
    return cheatsheet.add_entry(db_path, user.id, topic_id, formula, label)


def delete_cheat_sheet_entry(db_path: str, token: str, entry_id: int) -> dict:
    user = authenticate(db_path, token)
    if not cheatsheet.delete_entry(db_path, user.id, entry_id):
        raise NotFoundError("Entry", entry_id)
    return {"success": True}


# --- Admin ---


ADMIN_CREATE = {
    "course": content.create_course,
    "topic": content.create_topic,
    "card": content.create_card,
    "template": content.create_template,
}
ADMIN_UPDATE = {
    "course": content.update_course,
    "topic": content.update_topic,
    "card": content.update_card,
    "template": content.update_template,
}
ADMIN_DELETE = {
    "course": content.delete_course,
    "topic": content.delete_topic,
    "card": content.delete_card,
    "template": content.delete_template,
}


ADMIN_FIELDS = {
    "course": (content.COURSE_FIELDS, ("name", "description")),
    "topic": (content.TOPIC_FIELDS, ("name", "description")),
    "card": (content.CARD_FIELDS, ("topic_id", "title", "content")),
    "template": (content.TEMPLATE_FIELDS, ("topic_id", "template_text", "solution_template", "parameters")),
}


def _entity(entity: str) -> str:
    if entity not in ADMIN_FIELDS:
        raise ValidationError(f"Unknown entity: {entity}")
    return entity


def admin_create(db_path: str, token: str, entity: str, data: dict):
    _admin(db_path, token)
    _entity(entity)
    allowed, required = ADMIN_FIELDS[entity]
    content.require_fields(data, *required)
    return ADMIN_CREATE[entity](db_path, **{k: v for k, v in data.items() if k in allowed})


def admin_update(db_path: str, token: str, entity: str, entity_id: int, data: dict):
    _admin(db_path, token)
    _entity(entity)
    return ADMIN_UPDATE[entity](db_path, entity_id, data)


def admin_delete(db_path: str, token: str, entity: str, entity_id: int) -> dict:
    _admin(db_path, token)
    _entity(entity)
    ADMIN_DELETE[entity](db_path, entity_id)
    return {"success": True}


def admin_list(db_path: str, token: str, entity: str, topic_id: int | None = None) -> list:
    _admin(db_path, token)
    if entity == "course":
        return content.list_courses(db_path)
    if entity == "topic":
        return content.list_topics(db_path)
    if entity == "card":
        return content.list_cards(db_path, topic_id)
    return content.list_templates(db_path, topic_id)


def admin_import_content(db_path: str, token: str, file_path: str) -> dict:
    _admin(db_path, token)
    return import_file(db_path, file_path)
