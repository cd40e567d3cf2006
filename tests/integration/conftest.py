import pytest


@pytest.fixture(autouse=True)
def client_context(_domains):
    """The checkout client runs its cart session in the ordering domain context.

    Requests to the API push their own context through the app middleware.
    """
    ordering, _ = _domains
    ctx = ordering.domain_context()
    ctx.push()

    yield

    ctx.pop()
