from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="refcheck-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_ROOT / 'refcheck.db'}")
os.environ.setdefault("DATA_DIR", str(_TEST_ROOT))
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SUBMIT_FAILURE_RATE", "0")

import pytest  # noqa: E402

from refcheck.db import models  # noqa: E402,F401
from refcheck.db.base import Base  # noqa: E402
from refcheck.db.seed import seed_mock_rejections, seed_mock_tokens  # noqa: E402
from refcheck.db.session import SessionLocal, engine  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        seed_mock_tokens(session)
        seed_mock_rejections(session)
    yield
