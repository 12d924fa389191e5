"""Cheat sheet: preset formulas from learn cards plus the user's own entries."""
from exam_tutor.content import ensure_course_unlocked, get_course, list_cards, list_topics, require_topic
from exam_tutor.db import get_connection
from exam_tutor.errors import NotFoundError, ValidationError
from exam_tutor.models import CheatSheetEntry, entry_from_row


def list_entries(db_path: str, user_id: int, topic_id: int | None = None) -> list[CheatSheetEntry]:
    conn = get_connection(db_path)
    if topic_id is None:
        rows = conn.execute(
            "SELECT * FROM cheat_sheet_entries WHERE user_id = ? ORDER BY order_index, id", (user_id,)
        ).fetchall()
    else:
        rows = conn.execute(
            """SELECT * FROM cheat_sheet_entries WHERE user_id = ? AND topic_id = ?
            ORDER BY order_index, id""",
            (user_id, topic_id),
        ).fetchall()
    conn.close()
    return [entry_from_row(r) for r in rows]


def add_entry(db_path: str, user_id: int, topic_id: int, formula: str, label: str,
              order_index: int | None = None) -> CheatSheetEntry:
    if not formula or not label:
        raise ValidationError("formula and label are required")
    require_topic(db_path, topic_id)
    conn = get_connection(db_path)
    if order_index is None:
        order_index = conn.execute(
            "SELECT COALESCE(MAX(order_index) + 1, 0) FROM cheat_sheet_entries WHERE user_id = ? AND topic_id = ?",
            (user_id, topic_id),
        ).fetchone()[0]
    cur = conn.execute(
        "INSERT INTO cheat_sheet_entries (user_id, topic_id, formula, label, order_index) VALUES (?, ?, ?, ?, ?)",
        (user_id, topic_id, formula, label, order_index),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM cheat_sheet_entries WHERE id = ?", (cur.lastrowid,)).fetchone()
    conn.close()
    return entry_from_row(row)


def delete_entry(db_path: str, user_id: int, entry_id: int) -> bool:
    """Delete one of the user's entries. Returns False if they don't own it."""
    conn = get_connection(db_path)
    cur = conn.execute(
        "DELETE FROM cheat_sheet_entries WHERE id = ? AND user_id = ?", (entry_id, user_id)
    )
    conn.commit()
    conn.close()
    return cur.rowcount > 0


def get_cheat_sheet(db_path: str, user_id: int, course_id: int) -> list[dict]:
    course = get_course(db_path, course_id)
    if course is None:
        raise NotFoundError("Course", course_id)
    ensure_course_unlocked(course)
    sections = []
    for topic in list_topics(db_path, course_id):
        groups = [
            {
                "card_id": card.id,
                "card_title": card.title,
                "formulas": [{"id": f"preset-{card.id}", "formula": card.formula, "source": "preset"}],
            }
            for card in list_cards(db_path, topic.id)
            if card.formula
        ]
        user_entries = [
            {"id": e.id, "formula": e.formula, "label": e.label, "source": "user"}
            for e in list_entries(db_path, user_id, topic.id)
        ]
        sections.append({"topic": topic, "groups": groups, "user_entries": user_entries})
    return sections
