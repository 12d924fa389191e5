import pytest
from unittest.mock import patch
from rich.console import Console

from exam_tutor import app, content
from exam_tutor.app import SessionExitRequested, call, progress_bar, session_prompt
from exam_tutor.grader import get_practice_record
from exam_tutor.progress import get_completed_card_ids
from exam_tutor.seed import seed_all


@pytest.fixture
def seeded(tmp_db, make_user):
    user, token = make_user()
    seed_all(tmp_db)
    return user, token


@pytest.fixture
def recorded():
    console = Console(record=True, width=120)
    with patch("exam_tutor.app.console", console):
        yield console


def magnitude_template(db_path):
    vectors = content.list_topics(db_path)[0]
    return next(t for t in content.list_templates(db_path, vectors.id) if t.kind == "magnitude")


def test_session_prompt_raises_on_q():
    with patch("exam_tutor.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("exam_tutor.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("exam_tutor.app.Prompt.ask", return_value="hello"):
        assert session_prompt("test prompt") == "hello"


def test_progress_bar():
    assert progress_bar(100, width=4) == "[green]████[/green]"
    assert progress_bar(0, width=4) == "[red]░░░░[/red]"


def test_call_prints_error(tmp_db, seeded, recorded):
    assert call(tmp_db, "bogus", app.api.list_courses) is None
    assert "Not authenticated" in recorded.export_text()


def test_learn_session_exits_on_q(tmp_db, seeded):
    user, token = seeded
    vectors = content.list_topics(tmp_db)[0]
    cards = content.list_cards(tmp_db, vectors.id)
    # Card 1: reveal, complete. Card 2: 'q' on reveal.
    with patch("exam_tutor.app.Prompt.ask", side_effect=["", "", "q"]):
        with pytest.raises(SessionExitRequested):
            app.run_learn_session(tmp_db, token, vectors.id)
    assert get_completed_card_ids(tmp_db, user.id, vectors.id) == {cards[0].id}


def test_learn_session_skips_completed(tmp_db, seeded, recorded):
    user, token = seeded
    topic = next(t for t in content.list_topics(tmp_db) if t.name == "Integration Techniques")
    with patch("exam_tutor.app.Prompt.ask", side_effect=["", ""]):
        app.run_learn_session(tmp_db, token, topic.id)
    app.run_learn_session(tmp_db, token, topic.id)
    assert "Every card in this topic is complete" in recorded.export_text()


def test_practice_question_correct(tmp_db, seeded, recorded):
    user, token = seeded
    tpl = magnitude_template(tmp_db)
    with patch("exam_tutor.generator.random.randint", side_effect=[3, 4]), \
            patch("exam_tutor.app.Prompt.ask", return_value="5"):
        question = app.run_practice_question(tmp_db, token, tpl.topic_id, tpl.id)
    assert question["template_id"] == tpl.id
    assert "Correct!" in recorded.export_text()
    assert get_practice_record(tmp_db, user.id, tpl.id)["correct"] == 1


def test_practice_reveal_then_master(tmp_db, seeded, recorded):
    user, token = seeded
    tpl = magnitude_template(tmp_db)
    # reveal, mark mastered, then quit on the next question
    with patch("exam_tutor.app.Prompt.ask", side_effect=["?", "m", "q"]), \
            patch("exam_tutor.api.random.choice", return_value=tpl):
        with pytest.raises(SessionExitRequested):
            app.run_practice_loop(tmp_db, token, tpl.topic_id)
    text = recorded.export_text()
    assert "Solution" in text
    assert "Marked as mastered" in text
    assert get_practice_record(tmp_db, user.id, tpl.id)["correct"] == 1


def test_practice_reveal_without_master(tmp_db, seeded, recorded):
    user, token = seeded
    tpl = magnitude_template(tmp_db)
    with patch("exam_tutor.app.Prompt.ask", side_effect=["?", "q"]), \
            patch("exam_tutor.api.random.choice", return_value=tpl):
        with pytest.raises(SessionExitRequested):
            app.run_practice_loop(tmp_db, token, tpl.topic_id)
    assert get_practice_record(tmp_db, user.id, tpl.id) is None


def test_practice_regenerate_keeps_template(tmp_db, seeded, recorded):
    _, token = seeded
    tpl = magnitude_template(tmp_db)
    with patch("exam_tutor.app.Prompt.ask", side_effect=["?", "r", "?", "q"]), \
            patch("exam_tutor.api.random.choice", return_value=tpl) as choice:
        with pytest.raises(SessionExitRequested):
            app.run_practice_loop(tmp_db, token, tpl.topic_id)
    # only the first question picks at random; the second is pinned
    assert choice.call_count == 1
    assert recorded.export_text().count("Find the magnitude of vector") == 2


def test_cmd_progress(tmp_db, seeded, recorded):
    _, token = seeded
    app.cmd_progress(tmp_db, token)
    text = recorded.export_text()
    assert "Overall" in text
    assert "NOT STARTED" in text
    assert "Vectors" in text


def test_cmd_login_register(tmp_db, seeded):
    answers = ["register", "new@example.com", "Newcomer", "secret123"]
    with patch("exam_tutor.app.Prompt.ask", side_effect=answers):
        token = app.cmd_login(tmp_db)
    assert token
    assert app.auth.authenticate(tmp_db, token).display_name == "Newcomer"


def test_cmd_login_bad_password(tmp_db, seeded, recorded):
    with patch("exam_tutor.app.Prompt.ask", side_effect=["login", "student@example.com", "wrong-pass"]):
        assert app.cmd_login(tmp_db) == ""
    assert "Invalid credentials" in recorded.export_text()
