import os
import tempfile
from pathlib import Path

import pytest

# guestbook.main builds a module-level app on import; keep it off the working tree.
os.environ["GUESTBOOK_DB_PATH"] = str(Path(tempfile.mkdtemp(prefix="guestbook-tests-")) / "guestbook.db")
for _name in ("REDIS_HOST", "REDIS_PORT", "REDIS_PASSWORD", "GUESTBOOK_CACHE"):
    os.environ.pop(_name, None)

from guestbook.cache import MemoryCache  # noqa: E402
from guestbook.service import MessageService  # noqa: E402
from guestbook.storage import SQLiteStore  # noqa: E402


@pytest.fixture
def store(tmp_path):
    store = SQLiteStore(db_path=str(tmp_path / "guestbook.db"))
    store.initialize()
    return store


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def service(store, cache):
    return MessageService(store=store, cache=cache)
