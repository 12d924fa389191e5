import pytest
from unittest.mock import patch

from exam_tutor import content
from exam_tutor.db import init_db
from exam_tutor.errors import ValidationError
from exam_tutor.generator import check_template, generate
from exam_tutor.seed import is_seeded, load_seed_data, seed_all


def test_seed_all(tmp_db):
    init_db(tmp_db)
    counts = seed_all(tmp_db)
    assert counts == {"courses": 2, "topics": 7, "cards": 8, "templates": 9}


def test_is_seeded(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    seed_all(tmp_db)
    assert is_seeded(tmp_db)


def test_seed_all_runs_once(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    assert seed_all(tmp_db) is None
    assert content.count_topics(tmp_db) == 7


def test_second_course_locked(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    courses = content.list_courses(tmp_db)
    assert [c.locked for c in courses] == [False, True]
    assert all(content.list_cards(tmp_db, t.id) == [] for t in content.list_topics(tmp_db, courses[1].id))


def test_every_template_resolves(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    for topic in content.list_topics(tmp_db):
        for tpl in content.list_templates(tmp_db, topic.id):
            assert check_template(tpl) == {"answer_resolved": True, "unresolved_placeholders": []}
            assert generate(tpl).correct_answer != ""


def test_seed_data_has_kinds():
    data = load_seed_data()
    kinds = [tpl["kind"] for course in data["courses"] for topic in course["topics"]
             for tpl in topic.get("templates", [])]
    assert len(kinds) == 9
    assert "magnitude" in kinds


def test_broken_seed_leaves_database_unseeded(tmp_db):
    init_db(tmp_db)
    data = load_seed_data()
    data["courses"][0]["topics"][-1]["templates"] = [
        {"template_text": "q {a}", "solution_template": "s", "parameters": {"a": {"min": 5, "max": 1}}},
    ]
    with patch("exam_tutor.seed.load_seed_data", return_value=data):
        with pytest.raises(ValidationError):
            seed_all(tmp_db)
    assert not is_seeded(tmp_db)
    assert content.list_courses(tmp_db) == []
