"""Game domain services: round engine, registry, auth and broadcasting.

This package contains the transport-agnostic core that HTTP routes and
socket handlers call into, keeping transport concerns separated from
core game mechanics.
"""

from .errors import AuthError, GameError, NotFoundError, StateError, ValidationError
from .service import GameService

__all__ = [
    'AuthError',
    'GameError',
    'GameService',
    'NotFoundError',
    'StateError',
    'ValidationError',
]
