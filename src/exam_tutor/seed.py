"""Seed the database with the bundled courses, topics, cards and templates."""
import json
from pathlib import Path

from loguru import logger

from exam_tutor.content import count_topics
from exam_tutor.importer import import_content

CONTENT_DIR = Path(__file__).parent / "data"
DEFAULT_CONTENT = "calculus.json"


def is_seeded(db_path: str) -> bool:
    """Check whether the database already has topics."""
    return count_topics(db_path) > 0


def load_seed_data(name: str = DEFAULT_CONTENT) -> dict:
    return json.loads((CONTENT_DIR / name).read_text(encoding="utf-8"))


def seed_all(db_path: str) -> dict | None:
    """Load the bundled content once; later calls are no-ops."""
    if is_seeded(db_path):
        return None
    logger.info(f"Seeding database with {DEFAULT_CONTENT}")
    counts = import_content(db_path, load_seed_data())
    logger.info(f"Seeded {counts}")
    return counts
