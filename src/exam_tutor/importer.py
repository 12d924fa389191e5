"""Bulk content import from JSON or YAML files.

Expected shape::

    courses:
      - name: ...
        description: ...
        topics:
          - name: ...
            cards: [{title, content, formula, quick_check, ...}]
            templates: [{template_text, solution_template, parameters, ...}]
    topics: [...]        # optional, topics without a course
"""
import json
from pathlib import Path

import yaml
from loguru import logger

from exam_tutor import content
from exam_tutor.errors import ValidationError

COURSE_KEYS = ("name", "description", "icon", "order_index", "locked")
TOPIC_KEYS = ("name", "description", "icon", "order_index")
CARD_KEYS = ("title", "content", "formula", "quick_check", "quick_check_answer", "order_index")
TEMPLATE_KEYS = ("template_text", "solution_template", "parameters", "answer_type", "kind")


def read_file_content(file_path: str) -> dict:
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
    elif suffix in (".yaml", ".yml"):
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    else:
        raise ValidationError(f"Unsupported content file type: {suffix or path.name}")
    if not isinstance(data, dict):
        raise ValidationError("Content file must hold a mapping at the top level")
    return data


def _pick(data: dict, keys: tuple) -> dict:
    return {k: data[k] for k in keys if k in data}


def _items(data: dict, key: str) -> list:
    items = data.get(key, [])
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise ValidationError(f"{key} must be a list of mappings")
    return items


def _check_topic(topic_data: dict) -> None:
    content.require_fields(topic_data, "name", "description")
    for card in _items(topic_data, "cards"):
        content.require_fields(card, "title", "content")
    for tpl in _items(topic_data, "templates"):
        content.require_fields(tpl, "template_text", "solution_template", "parameters")
        content.validate_template_fields(tpl)


def validate_content(data: dict) -> None:
    """Check a whole document before anything is written.

    A file that fails here leaves the database untouched.
    """
    for course_data in _items(data, "courses"):
        content.require_fields(course_data, "name", "description")
        for topic_data in _items(course_data, "topics"):
            _check_topic(topic_data)
    for topic_data in _items(data, "topics"):
        _check_topic(topic_data)


def _import_topic(db_path: str, topic_data: dict, course_id: int | None, counts: dict) -> None:
    topic = content.create_topic(db_path, course_id=course_id, **_pick(topic_data, TOPIC_KEYS))
    counts["topics"] += 1
    for i, card in enumerate(topic_data.get("cards", [])):
        fields = _pick(card, CARD_KEYS)
        fields.setdefault("order_index", i)
        content.create_card(db_path, topic.id, **fields)
        counts["cards"] += 1
    for tpl in topic_data.get("templates", []):
        # a template without a kind keeps the keyword dispatch
        content.create_template(db_path, topic.id, **_pick(tpl, TEMPLATE_KEYS))
        counts["templates"] += 1


def import_content(db_path: str, data: dict) -> dict:
    """Create every course, topic, card and template described by ``data``."""
    validate_content(data)
    counts = {"courses": 0, "topics": 0, "cards": 0, "templates": 0}
    for i, course_data in enumerate(data.get("courses", [])):
        fields = _pick(course_data, COURSE_KEYS)
        fields.setdefault("order_index", i)
        course = content.create_course(db_path, **fields)
        counts["courses"] += 1
        for topic_data in course_data.get("topics", []):
            _import_topic(db_path, topic_data, course.id, counts)
    for topic_data in data.get("topics", []):
        _import_topic(db_path, topic_data, None, counts)
    return counts


def import_file(db_path: str, file_path: str) -> dict:
    """Import a content file. Returns the number of rows created per entity."""
    counts = import_content(db_path, read_file_content(file_path))
    logger.info(f"Imported {Path(file_path).name}: {counts}")
    return {"filename": Path(file_path).name, **counts}
