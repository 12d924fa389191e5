# tests/test_attempts.py
import pytest

from exam_tutor import content
from exam_tutor.attempts import create_attempt, get_owned_attempt, list_attempts
from exam_tutor.errors import AuthorizationError, NotFoundError, ValidationError


def setup(db_path, make_user):
    owner, _ = make_user()
    other, _ = make_user(email="other@example.com")
    topic = content.create_topic(db_path, "Vectors", "d")
    tpl = content.create_template(db_path, topic.id, "q {a}", "s", {"a": {"min": 1, "max": 2}})
    return owner, other, topic, tpl


def test_create_and_fetch(tmp_db, make_user):
    owner, _, topic, tpl = setup(tmp_db, make_user)
    attempt_id = create_attempt(tmp_db, owner.id, tpl.id, topic.id, "q 1", "1", "s")
    attempt = get_owned_attempt(tmp_db, owner.id, attempt_id)
    assert attempt.question_text == "q 1"
    assert attempt.correct_answer == "1"
    assert attempt.created_at is not None


def test_ids_are_unique(tmp_db, make_user):
    owner, _, topic, tpl = setup(tmp_db, make_user)
    ids = {create_attempt(tmp_db, owner.id, tpl.id, topic.id, "q", "1", "s") for _ in range(10)}
    assert len(ids) == 10


def test_other_user_forbidden(tmp_db, make_user):
    owner, other, topic, tpl = setup(tmp_db, make_user)
    attempt_id = create_attempt(tmp_db, owner.id, tpl.id, topic.id, "q", "1", "s")
    with pytest.raises(AuthorizationError):
        get_owned_attempt(tmp_db, other.id, attempt_id)


def test_missing_id(tmp_db, make_user):
    owner, *_ = setup(tmp_db, make_user)
    with pytest.raises(ValidationError):
        get_owned_attempt(tmp_db, owner.id, "")


def test_unknown_id(tmp_db, make_user):
    owner, *_ = setup(tmp_db, make_user)
    with pytest.raises(NotFoundError):
        get_owned_attempt(tmp_db, owner.id, "nope")


def test_list_attempts_by_topic(tmp_db, make_user):
    owner, other, topic, tpl = setup(tmp_db, make_user)
    create_attempt(tmp_db, owner.id, tpl.id, topic.id, "q", "1", "s")
    create_attempt(tmp_db, other.id, tpl.id, topic.id, "q", "1", "s")
    assert len(list_attempts(tmp_db, owner.id)) == 1
    assert len(list_attempts(tmp_db, owner.id, topic_id=topic.id)) == 1
    assert list_attempts(tmp_db, owner.id, topic_id=topic.id + 1) == []


def test_deleting_template_removes_attempts(tmp_db, make_user):
    owner, _, topic, tpl = setup(tmp_db, make_user)
    create_attempt(tmp_db, owner.id, tpl.id, topic.id, "q", "1", "s")
    content.delete_template(tmp_db, tpl.id)
    assert list_attempts(tmp_db, owner.id) == []
