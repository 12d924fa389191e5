"""Learn-card completion and per-topic progress percentages."""
from exam_tutor.content import get_card, list_cards, list_topics, require_topic
from exam_tutor.db import get_connection
from exam_tutor.errors import NotFoundError, ValidationError
from exam_tutor.models import Topic, TopicProgress


def get_readiness_label(score: float) -> str:
    if score >= 80:
        return "MASTERED"
    elif score >= 50:
        return "ON TRACK"
    elif score > 0:
        return "STARTED"
    return "NOT STARTED"


def get_readiness_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 50:
        return "yellow"
    elif score > 0:
        return "dark_orange"
    return "red"


def _percent(done: int, total: int) -> float:
    return (done / total) * 100 if total > 0 else 0.0


def mark_card_complete(db_path: str, user_id: int, card_id: int, topic_id: int | None = None) -> None:
    """Mark a learn card complete; repeated calls leave a single row."""
    card = get_card(db_path, card_id)
    if card is None:
        raise NotFoundError("Card", card_id)
    if topic_id is not None and topic_id != card.topic_id:
        raise ValidationError(f"Card {card_id} is not in topic {topic_id}")
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO user_learn_progress (user_id, learn_card_id, topic_id, completed)
        VALUES (?, ?, ?, 1)
        ON CONFLICT(user_id, learn_card_id) DO UPDATE SET completed = 1""",
        (user_id, card_id, card.topic_id),
    )
    conn.commit()
    conn.close()


def get_completed_card_ids(db_path: str, user_id: int, topic_id: int) -> set[int]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT learn_card_id FROM user_learn_progress WHERE user_id = ? AND topic_id = ? AND completed = 1",
        (user_id, topic_id),
    ).fetchall()
    conn.close()
    return {r["learn_card_id"] for r in rows}


def get_mastered_template_ids(db_path: str, user_id: int, topic_id: int) -> set[int]:
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT question_template_id FROM user_practice_progress
        WHERE user_id = ? AND topic_id = ? AND correct = 1""",
        (user_id, topic_id),
    ).fetchall()
    conn.close()
    return {r["question_template_id"] for r in rows}


def get_learn_session(db_path: str, user_id: int, topic_id: int) -> dict:
    """Topic plus its ordered cards, each flagged with the user's completion."""
    topic = require_topic(db_path, topic_id)
    done = get_completed_card_ids(db_path, user_id, topic_id)
    cards = [{**vars(card), "completed": card.id in done} for card in list_cards(db_path, topic_id)]
    return {"topic": topic, "cards": cards}


def _topic_progress(db_path: str, user_id: int, topic: Topic) -> TopicProgress:
    conn = get_connection(db_path)
    learn_total = conn.execute(
        "SELECT COUNT(*) FROM learn_cards WHERE topic_id = ?", (topic.id,)
    ).fetchone()[0]
    practice_total = conn.execute(
        "SELECT COUNT(*) FROM question_templates WHERE topic_id = ?", (topic.id,)
    ).fetchone()[0]
    conn.close()
    learn_completed = len(get_completed_card_ids(db_path, user_id, topic.id))
    practice_correct = len(get_mastered_template_ids(db_path, user_id, topic.id))
    learn_percent = _percent(learn_completed, learn_total)
    practice_percent = _percent(practice_correct, practice_total)
    return TopicProgress(
        topic=topic,
        learn_completed=learn_completed,
        learn_total=learn_total,
        practice_correct=practice_correct,
        practice_total=practice_total,
        learn_percent=learn_percent,
        practice_percent=practice_percent,
        total_percent=(learn_percent + practice_percent) / 2,
    )


def get_topic_progress(db_path: str, user_id: int, topic_id: int) -> TopicProgress:
    return _topic_progress(db_path, user_id, require_topic(db_path, topic_id))


def get_practice_info(db_path: str, user_id: int, topic_id: int) -> dict:
    progress = get_topic_progress(db_path, user_id, topic_id)
    return {"topic": progress.topic, "practice_percent": progress.practice_percent}


def get_progress_overview(db_path: str, user_id: int, course_id: int | None = None) -> dict:
    """Per-topic progress and the overall mean.

    Topics without cards or templates count as 0% rather than being skipped.
    """
    topics = [_topic_progress(db_path, user_id, t) for t in list_topics(db_path, course_id)]
    overall = sum(tp.total_percent for tp in topics) / len(topics) if topics else 0.0
    return {"overall": overall, "topics": topics}
