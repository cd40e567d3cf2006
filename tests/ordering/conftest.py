import pytest


@pytest.fixture(autouse=True)
def ordering_context(_domains):
    """Push the ordering domain context around each test."""
    ordering, _ = _domains
    ctx = ordering.domain_context()
    ctx.push()

    yield

    ctx.pop()
