import os
import tempfile
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Pins the environment to in-memory adapters so that every test starts
    from an empty store and an empty catalog.
    """
    os.environ["PREBILL_ENV"] = session.config.option.env
    os.environ["PREBILL_STORE"] = "memory"
    os.environ["CATALOG_ADAPTER"] = "memory"
    os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="prebill-logs-"))


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically reset adapters after every test"""
    yield

    from prebill.catalog import reset_catalog
    from prebill.store import reset_store

    reset_store()
    reset_catalog()
