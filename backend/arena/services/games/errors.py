"""Typed rejections raised by the game core.

Every rejection aborts the requested operation before anything is
persisted, so callers can surface the message to the user as-is.
"""


class GameError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {'error': self.message}


class ValidationError(GameError):
    """Malformed input: bad code, name too long, round count out of bounds."""
    status_code = 400


class AuthError(GameError):
    """Unknown or mismatched credentials, or a host-only call by a non-host."""
    status_code = 401


class StateError(GameError):
    """Operation not valid in the current phase or participant state."""
    status_code = 409


class NotFoundError(GameError):
    status_code = 404
