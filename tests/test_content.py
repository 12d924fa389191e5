# tests/test_content.py
import pytest

from exam_tutor import content
from exam_tutor.db import get_connection, init_db
from exam_tutor.errors import AuthorizationError, NotFoundError, ValidationError

PARAMS = {"a": {"min": 1, "max": 5}, "b": {"min": 1, "max": 5}}


def setup_topic(db_path, locked=False):
    init_db(db_path)
    course = content.create_course(db_path, "Calc", "Calculus", locked=locked)
    topic = content.create_topic(db_path, "Vectors", "Vector basics", course_id=course.id)
    return course, topic


def test_create_and_list_courses(tmp_db):
    init_db(tmp_db)
    content.create_course(tmp_db, "Second", "d", order_index=1)
    content.create_course(tmp_db, "First", "d", order_index=0)
    names = [c.name for c in content.list_courses(tmp_db)]
    assert names == ["First", "Second"]


def test_create_course_requires_name(tmp_db):
    init_db(tmp_db)
    with pytest.raises(ValidationError):
        content.create_course(tmp_db, "", "d")


def test_course_icon_defaults(tmp_db):
    init_db(tmp_db)
    assert content.create_course(tmp_db, "C", "d").icon == "NEW"


def test_ensure_course_unlocked(tmp_db):
    course, _ = setup_topic(tmp_db, locked=True)
    with pytest.raises(AuthorizationError):
        content.ensure_course_unlocked(course)


def test_update_course(tmp_db):
    course, _ = setup_topic(tmp_db)
    updated = content.update_course(tmp_db, course.id, {"name": "Calculus II", "locked": True})
    assert updated.name == "Calculus II"
    assert updated.locked is True


def test_update_missing_course(tmp_db):
    init_db(tmp_db)
    with pytest.raises(NotFoundError):
        content.update_course(tmp_db, 42, {"name": "x"})


def test_delete_course_detaches_topics(tmp_db):
    course, topic = setup_topic(tmp_db)
    content.delete_course(tmp_db, course.id)
    assert content.get_course(tmp_db, course.id) is None
    assert content.get_topic(tmp_db, topic.id).course_id is None


def test_list_topics_by_course(tmp_db):
    course, topic = setup_topic(tmp_db)
    content.create_topic(tmp_db, "Loose", "No course")
    assert [t.id for t in content.list_topics(tmp_db, course.id)] == [topic.id]
    assert content.count_topics(tmp_db) == 2


def test_create_topic_unknown_course(tmp_db):
    init_db(tmp_db)
    with pytest.raises(NotFoundError):
        content.create_topic(tmp_db, "T", "d", course_id=99)


def test_require_topic(tmp_db):
    init_db(tmp_db)
    with pytest.raises(NotFoundError):
        content.require_topic(tmp_db, 1)


def test_cards_ordered(tmp_db):
    _, topic = setup_topic(tmp_db)
    content.create_card(tmp_db, topic.id, "Second", "body", order_index=1)
    content.create_card(tmp_db, topic.id, "First", "body", formula="x^2", order_index=0)
    cards = content.list_cards(tmp_db, topic.id)
    assert [c.title for c in cards] == ["First", "Second"]
    assert cards[0].formula == "x^2"
    assert cards[1].formula is None


def test_create_card_unknown_topic(tmp_db):
    init_db(tmp_db)
    with pytest.raises(NotFoundError):
        content.create_card(tmp_db, 5, "T", "body")


def test_update_card(tmp_db):
    _, topic = setup_topic(tmp_db)
    card = content.create_card(tmp_db, topic.id, "T", "body")
    assert content.update_card(tmp_db, card.id, {"title": "New"}).title == "New"


def test_create_template_stores_parameters(tmp_db):
    _, topic = setup_topic(tmp_db)
    tpl = content.create_template(tmp_db, topic.id, "Find {a} + {b}", "{answer}", PARAMS, kind="dot_product")
    fetched = content.get_template(tmp_db, tpl.id)
    assert fetched.parameters == PARAMS
    assert fetched.answer_type == "numeric"
    assert fetched.kind == "dot_product"


def test_template_min_greater_than_max(tmp_db):
    _, topic = setup_topic(tmp_db)
    with pytest.raises(ValidationError):
        content.create_template(tmp_db, topic.id, "q", "s", {"a": {"min": 5, "max": 1}})


def test_template_non_integer_bounds(tmp_db):
    _, topic = setup_topic(tmp_db)
    with pytest.raises(ValidationError):
        content.create_template(tmp_db, topic.id, "q", "s", {"a": {"min": 1.5, "max": 3}})


def test_template_unknown_answer_type(tmp_db):
    _, topic = setup_topic(tmp_db)
    with pytest.raises(ValidationError):
        content.create_template(tmp_db, topic.id, "q", "s", PARAMS, answer_type="essay")


def test_template_unknown_kind(tmp_db):
    _, topic = setup_topic(tmp_db)
    with pytest.raises(ValidationError):
        content.create_template(tmp_db, topic.id, "q", "s", PARAMS, kind="telepathy")


def test_unresolved_template_is_still_saved(tmp_db):
    _, topic = setup_topic(tmp_db)
    tpl = content.create_template(tmp_db, topic.id, "Think about {x}", "{x}", {"x": {"min": 1, "max": 2}})
    assert content.get_template(tmp_db, tpl.id) is not None


def test_update_template_parameters(tmp_db):
    _, topic = setup_topic(tmp_db)
    tpl = content.create_template(tmp_db, topic.id, "q {a}", "s", PARAMS)
    updated = content.update_template(tmp_db, tpl.id, {"parameters": {"a": {"min": 2, "max": 2}}})
    assert updated.parameters == {"a": {"min": 2, "max": 2}}


def test_delete_topic_cascades(tmp_db):
    _, topic = setup_topic(tmp_db)
    content.create_card(tmp_db, topic.id, "T", "body")
    content.create_template(tmp_db, topic.id, "q {a}", "s", PARAMS)
    content.delete_topic(tmp_db, topic.id)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM learn_cards").fetchone()[0] == 0
    assert conn.execute("SELECT COUNT(*) FROM question_templates").fetchone()[0] == 0
    conn.close()
