"""Tests for data model classes."""
from exam_tutor.db import get_connection, init_db
from exam_tutor.models import (
    Course, LearnCard, QuestionTemplate, Topic, TopicProgress, template_from_row,
)


def test_course_defaults():
    c = Course(id=1, name="Calc", description="d", icon="X")
    assert c.order_index == 0
    assert c.locked is False


def test_topic_without_course():
    t = Topic(id=1, name="Vectors", description="d", icon="V")
    assert t.course_id is None


def test_learn_card_optional_fields():
    card = LearnCard(id=1, topic_id=1, title="T", content="C")
    assert card.formula is None
    assert card.quick_check is None
    assert card.quick_check_answer is None


def test_template_defaults():
    tpl = QuestionTemplate(id=1, topic_id=1, template_text="q", solution_template="s")
    assert tpl.answer_type == "numeric"
    assert tpl.parameters == {}
    assert tpl.kind is None


def test_topic_progress_defaults():
    tp = TopicProgress(topic=Topic(id=1, name="n", description="d", icon="i"),
                       learn_completed=0, learn_total=0, practice_correct=0, practice_total=0)
    assert tp.total_percent == 0.0


def test_template_from_row_decodes_parameters(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO topics (name, description, icon) VALUES ('T', 'd', 'i')")
    conn.execute(
        """INSERT INTO question_templates (topic_id, template_text, solution_template, parameters)
        VALUES (1, 'q {a}', 's', '{"a": {"min": 1, "max": 3}}')"""
    )
    row = conn.execute("SELECT * FROM question_templates").fetchone()
    conn.close()
    tpl = template_from_row(row)
    assert tpl.parameters == {"a": {"min": 1, "max": 3}}
    assert tpl.kind is None
