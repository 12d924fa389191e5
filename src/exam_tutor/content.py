"""Content store: courses, topics, learn cards and question templates."""
import json

from loguru import logger

from exam_tutor.db import get_connection
from exam_tutor.errors import AuthorizationError, NotFoundError, ValidationError
from exam_tutor.generator import TemplateKind, check_template, is_range
from exam_tutor.models import (
    Course, LearnCard, QuestionTemplate, Topic,
    card_from_row, course_from_row, template_from_row, topic_from_row,
)

ANSWER_TYPES = ("numeric", "text")

COURSE_FIELDS = ("name", "description", "icon", "order_index", "locked")
TOPIC_FIELDS = ("course_id", "name", "description", "icon", "order_index")
CARD_FIELDS = ("topic_id", "title", "content", "formula", "quick_check", "quick_check_answer", "order_index")
TEMPLATE_FIELDS = ("topic_id", "template_text", "solution_template", "answer_type", "parameters", "kind")


def require_fields(data: dict, *names: str) -> None:
    missing = [n for n in names if data.get(n) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required")


def _update(db_path: str, table: str, allowed: tuple, entity_id: int, data: dict) -> bool:
    changes = {k: v for k, v in data.items() if k in allowed}
    conn = get_connection(db_path)
    if changes:
        assignments = ", ".join(f"{col} = ?" for col in changes)
        cur = conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", (*changes.values(), entity_id))
        found = cur.rowcount > 0
    else:
        found = conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (entity_id,)).fetchone() is not None
    conn.commit()
    conn.close()
    return found


def _delete(db_path: str, table: str, entity_id: int) -> bool:
    conn = get_connection(db_path)
    cur = conn.execute(f"DELETE FROM {table} WHERE id = ?", (entity_id,))
    conn.commit()
    conn.close()
    return cur.rowcount > 0


# --- Courses ---


def list_courses(db_path: str) -> list[Course]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM courses ORDER BY order_index, id").fetchall()
    conn.close()
    return [course_from_row(r) for r in rows]


def get_course(db_path: str, course_id: int) -> Course | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
    conn.close()
    return course_from_row(row) if row else None


def create_course(db_path: str, name: str, description: str, icon: str = "NEW",
                  order_index: int = 0, locked: bool = False) -> Course:
    require_fields({"name": name, "description": description}, "name", "description")
    conn = get_connection(db_path)
    cur = conn.execute(
        "INSERT INTO courses (name, description, icon, order_index, locked) VALUES (?, ?, ?, ?, ?)",
        (name, description, icon or "NEW", order_index, int(locked)),
    )
    conn.commit()
    conn.close()
    logger.info(f"Created course {cur.lastrowid}: {name}")
    return get_course(db_path, cur.lastrowid)


def update_course(db_path: str, course_id: int, data: dict) -> Course:
    if "locked" in data:
        data = {**data, "locked": int(bool(data["locked"]))}
    if not _update(db_path, "courses", COURSE_FIELDS, course_id, data):
        raise NotFoundError("Course", course_id)
    return get_course(db_path, course_id)


def delete_course(db_path: str, course_id: int) -> None:
    """Delete a course; its topics stay but are detached."""
    if _delete(db_path, "courses", course_id):
        logger.info(f"Deleted course {course_id}")


def ensure_course_unlocked(course: Course) -> None:
    if course.locked:
        raise AuthorizationError(f"{course.name} is not available yet")


# --- Topics ---


def list_topics(db_path: str, course_id: int | None = None) -> list[Topic]:
    conn = get_connection(db_path)
    if course_id is None:
        rows = conn.execute("SELECT * FROM topics ORDER BY order_index, id").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM topics WHERE course_id = ? ORDER BY order_index, id", (course_id,)
        ).fetchall()
    conn.close()
    return [topic_from_row(r) for r in rows]


def get_topic(db_path: str, topic_id: int) -> Topic | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM topics WHERE id = ?", (topic_id,)).fetchone()
    conn.close()
    return topic_from_row(row) if row else None


def require_topic(db_path: str, topic_id: int) -> Topic:
    topic = get_topic(db_path, topic_id)
    if topic is None:
        raise NotFoundError("Topic", topic_id)
    return topic


def count_topics(db_path: str) -> int:
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM topics").fetchone()[0]
    conn.close()
    return count


def create_topic(db_path: str, name: str, description: str, icon: str = "NEW",
                 order_index: int = 0, course_id: int | None = None) -> Topic:
    require_fields({"name": name, "description": description}, "name", "description")
    if course_id is not None and get_course(db_path, course_id) is None:
        raise NotFoundError("Course", course_id)
    conn = get_connection(db_path)
    cur = conn.execute(
        "INSERT INTO topics (course_id, name, description, icon, order_index) VALUES (?, ?, ?, ?, ?)",
        (course_id, name, description, icon or "NEW", order_index),
    )
    conn.commit()
    conn.close()
    logger.info(f"Created topic {cur.lastrowid}: {name}")
    return get_topic(db_path, cur.lastrowid)


def update_topic(db_path: str, topic_id: int, data: dict) -> Topic:
    if data.get("course_id") is not None and get_course(db_path, data["course_id"]) is None:
        raise NotFoundError("Course", data["course_id"])
    if not _update(db_path, "topics", TOPIC_FIELDS, topic_id, data):
        raise NotFoundError("Topic", topic_id)
    return get_topic(db_path, topic_id)


def delete_topic(db_path: str, topic_id: int) -> None:
    """Delete a topic with its cards, templates, attempts, progress and cheat-sheet rows."""
    if _delete(db_path, "topics", topic_id):
        logger.info(f"Deleted topic {topic_id}")


# --- Learn cards ---


def list_cards(db_path: str, topic_id: int) -> list[LearnCard]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM learn_cards WHERE topic_id = ? ORDER BY order_index, id", (topic_id,)
    ).fetchall()
    conn.close()
    return [card_from_row(r) for r in rows]


def get_card(db_path: str, card_id: int) -> LearnCard | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM learn_cards WHERE id = ?", (card_id,)).fetchone()
    conn.close()
    return card_from_row(row) if row else None


def create_card(db_path: str, topic_id: int, title: str, content: str, formula: str | None = None,
                quick_check: str | None = None, quick_check_answer: str | None = None,
                order_index: int = 0) -> LearnCard:
    require_fields({"topic_id": topic_id, "title": title, "content": content}, "topic_id", "title", "content")
    require_topic(db_path, topic_id)
    conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT INTO learn_cards
        (topic_id, title, content, formula, quick_check, quick_check_answer, order_index)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (topic_id, title, content, formula or None, quick_check or None, quick_check_answer or None, order_index),
    )
    conn.commit()
    conn.close()
    return get_card(db_path, cur.lastrowid)


def update_card(db_path: str, card_id: int, data: dict) -> LearnCard:
    if "topic_id" in data:
        require_topic(db_path, data["topic_id"])
    if not _update(db_path, "learn_cards", CARD_FIELDS, card_id, data):
        raise NotFoundError("Card", card_id)
    return get_card(db_path, card_id)


def delete_card(db_path: str, card_id: int) -> None:
    _delete(db_path, "learn_cards", card_id)


# --- Question templates ---


def validate_parameters(parameters) -> None:
    if not isinstance(parameters, dict) or not parameters:
        raise ValidationError("parameters must be a non-empty mapping")
    for name, rule in parameters.items():
        if is_range(rule):
            lo, hi = rule["min"], rule["max"]
            if not all(isinstance(x, int) and not isinstance(x, bool) for x in (lo, hi)):
                raise ValidationError(f"Parameter {name}: min and max must be integers")
            if lo > hi:
                raise ValidationError(f"Parameter {name}: min {lo} is greater than max {hi}")
        elif isinstance(rule, dict):
            raise ValidationError(f"Parameter {name}: expected {{min, max}} or a fixed value")


def validate_template_fields(data: dict) -> None:
    if "answer_type" in data and data["answer_type"] not in ANSWER_TYPES:
        raise ValidationError(f"answer_type must be one of {', '.join(ANSWER_TYPES)}")
    if "parameters" in data:
        validate_parameters(data["parameters"])
    if data.get("kind"):
        try:
            TemplateKind(data["kind"])
        except ValueError:
            raise ValidationError(f"Unknown template kind: {data['kind']}")


def _warn_if_unresolved(template: QuestionTemplate) -> None:
    report = check_template(template)
    if not report["answer_resolved"]:
        logger.warning(f"Template {template.id} does not resolve an answer")
    if report["unresolved_placeholders"]:
        logger.warning(f"Template {template.id} leaves placeholders {report['unresolved_placeholders']}")


def list_templates(db_path: str, topic_id: int) -> list[QuestionTemplate]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM question_templates WHERE topic_id = ? ORDER BY id", (topic_id,)
    ).fetchall()
    conn.close()
    return [template_from_row(r) for r in rows]


def get_template(db_path: str, template_id: int) -> QuestionTemplate | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM question_templates WHERE id = ?", (template_id,)).fetchone()
    conn.close()
    return template_from_row(row) if row else None


def create_template(db_path: str, topic_id: int, template_text: str, solution_template: str,
                    parameters: dict, answer_type: str = "numeric", kind: str | None = None) -> QuestionTemplate:
    data = {
        "topic_id": topic_id, "template_text": template_text, "solution_template": solution_template,
        "parameters": parameters, "answer_type": answer_type or "numeric", "kind": kind or None,
    }
    require_fields(data, "topic_id", "template_text", "solution_template", "parameters")
    validate_template_fields(data)
    require_topic(db_path, topic_id)
    conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT INTO question_templates
        (topic_id, template_text, solution_template, answer_type, parameters, kind)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (topic_id, template_text, solution_template, data["answer_type"], json.dumps(parameters), data["kind"]),
    )
    conn.commit()
    conn.close()
    template = get_template(db_path, cur.lastrowid)
    _warn_if_unresolved(template)
    return template


def update_template(db_path: str, template_id: int, data: dict) -> QuestionTemplate:
    validate_template_fields(data)
    if "topic_id" in data:
        require_topic(db_path, data["topic_id"])
    if "parameters" in data:
        data = {**data, "parameters": json.dumps(data["parameters"])}
    if not _update(db_path, "question_templates", TEMPLATE_FIELDS, template_id, data):
        raise NotFoundError("Template", template_id)
    template = get_template(db_path, template_id)
    _warn_if_unresolved(template)
    return template


def delete_template(db_path: str, template_id: int) -> None:
    _delete(db_path, "question_templates", template_id)
