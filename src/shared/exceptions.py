"""Exceptions shared by every bounded context.

Domain rules raise protean's ``ValidationError`` with a field -> messages
mapping, the same shape the API layer returns to clients. The errors below
cover what protean has no name for.
"""

from protean.exceptions import InvalidOperationError


class InvalidTransitionError(InvalidOperationError):
    """An event was applied to a checkout state that does not accept it."""


class CollaboratorUnavailable(Exception):
    """A remote collaborator could not be reached or answered with a server error."""
