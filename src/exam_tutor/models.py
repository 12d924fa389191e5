"""Data classes for the tutor domain model."""
import json
import sqlite3
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class User:
    id: int
    email: str
    display_name: str
    is_admin: bool = False


@dataclass
class Course:
    id: int
    name: str
    description: str
    icon: str
    order_index: int = 0
    locked: bool = False


@dataclass
class Topic:
    id: int
    name: str
    description: str
    icon: str
    order_index: int = 0
    course_id: Optional[int] = None


@dataclass
class LearnCard:
    id: int
    topic_id: int
    title: str
    content: str
    formula: Optional[str] = None
    quick_check: Optional[str] = None
    quick_check_answer: Optional[str] = None
    order_index: int = 0


@dataclass
class QuestionTemplate:
    id: int
    topic_id: int
    template_text: str
    solution_template: str
    answer_type: str = "numeric"
    parameters: dict = field(default_factory=dict)
    kind: Optional[str] = None


@dataclass
class PracticeAttempt:
    id: str
    user_id: int
    template_id: int
    topic_id: int
    question_text: str
    correct_answer: str
    solution_steps: str
    created_at: Optional[str] = None


@dataclass
class UserLearnProgress:
    user_id: int
    learn_card_id: int
    topic_id: int
    completed: bool = False


@dataclass
class UserPracticeProgress:
    user_id: int
    question_template_id: int
    topic_id: int
    correct: bool = False
    attempts: int = 0


@dataclass
class CheatSheetEntry:
    id: int
    user_id: int
    topic_id: int
    formula: str
    label: str
    order_index: int = 0


@dataclass
class GeneratedQuestion:
    question_text: str
    solution_steps: str
    correct_answer: str
    parameters: dict = field(default_factory=dict)


@dataclass
class GradeResult:
    correct: bool
    correct_answer: str
    solution_steps: str


@dataclass
class TopicProgress:
    topic: Topic
    learn_completed: int
    learn_total: int
    practice_correct: int
    practice_total: int
    learn_percent: float = 0.0
    practice_percent: float = 0.0
    total_percent: float = 0.0


def user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"], email=row["email"], display_name=row["display_name"],
        is_admin=bool(row["is_admin"]),
    )


def course_from_row(row: sqlite3.Row) -> Course:
    return Course(
        id=row["id"], name=row["name"], description=row["description"], icon=row["icon"],
        order_index=row["order_index"], locked=bool(row["locked"]),
    )


def topic_from_row(row: sqlite3.Row) -> Topic:
    return Topic(
        id=row["id"], name=row["name"], description=row["description"], icon=row["icon"],
        order_index=row["order_index"], course_id=row["course_id"],
    )


def card_from_row(row: sqlite3.Row) -> LearnCard:
    return LearnCard(**dict(row))


def template_from_row(row: sqlite3.Row) -> QuestionTemplate:
    data = dict(row)
    data["parameters"] = json.loads(data["parameters"])
    return QuestionTemplate(**data)


def attempt_from_row(row: sqlite3.Row) -> PracticeAttempt:
    return PracticeAttempt(**dict(row))


def entry_from_row(row: sqlite3.Row) -> CheatSheetEntry:
    return CheatSheetEntry(**dict(row))
