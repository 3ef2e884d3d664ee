from __future__ import annotations

import logging

from refcheck.config import get_settings
from refcheck.db import models  # noqa: F401
from refcheck.db.base import Base
from refcheck.db.seed import seed_mock_rejections, seed_mock_tokens
from refcheck.db.session import SessionLocal, engine

logger = logging.getLogger(__name__)


def ensure_data_directories() -> None:
    get_settings().data_dir.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, int]:
    settings = get_settings()
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)

    if not settings.seed_mock_data:
        return {"seeded_tokens": 0, "seeded_rejections": 0}

    with SessionLocal() as session:
        tokens = seed_mock_tokens(session)
        rejections = seed_mock_rejections(session)
    logger.info("Database ready seeded_tokens=%s seeded_rejections=%s", tokens, rejections)
    return {"seeded_tokens": tokens, "seeded_rejections": rejections}
