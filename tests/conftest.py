from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from storage.db import init_db, make_engine, session_factory_for


@pytest.fixture()
def engine(tmp_path):
    engine = make_engine(tmp_path / "trakn-test.db")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return session_factory_for(engine)
