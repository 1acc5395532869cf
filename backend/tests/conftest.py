import pytest

from statement_parser.core.config import get_settings


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Tests patch env vars; never let a cached Settings instance leak between them.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_session_store():
    from statement_parser.services import statement_sessions

    statement_sessions._store = None
    yield
    statement_sessions._store = None
