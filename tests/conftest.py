import os
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
    """Select the configuration environment before any module reads settings."""
    os.environ["DAKARCART_ENV"] = session.config.option.env
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from shared.config import reset_settings

    reset_settings()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def _domains():
    """Initialize the ordering and payments domains once per session."""
    from ordering.domain import ordering
    from payments.domain import payments

    ordering.init()
    payments.init()
    return ordering, payments


@pytest.fixture(scope="session", autouse=True)
def setup_db(tmp_path_factory):
    from shared.database import configure_database, drop_db, setup_db

    database_path = tmp_path_factory.mktemp("db") / "dakarcart-test.db"
    configure_database(f"sqlite:///{database_path}")
    setup_db()

    yield

    drop_db()


@pytest.fixture(autouse=True)
def run_around_tests(_domains):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from payments.provider import reset_provider
    from protean import current_domain
    from shared.config import reset_settings
    from shared.database import Base, session_scope

    with session_scope() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())

    for domain in _domains:
        with domain.domain_context():
            for _, provider in current_domain.providers.items():
                provider._data_reset()

            for _, broker in current_domain.brokers.items():
                broker._data_reset()

            current_domain.event_store.store._data_reset()

    reset_provider()
    reset_settings()
