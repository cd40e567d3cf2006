import pytest


@pytest.fixture(autouse=True)
def payments_context(_domains):
    """Push the payments domain context around each test."""
    _, payments = _domains
    ctx = payments.domain_context()
    ctx.push()

    yield

    ctx.pop()
