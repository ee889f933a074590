from dataclasses import dataclass

from .errors import AuthError
from .types import Participant, Session


@dataclass(frozen=True)
class AuthResult:
    valid: bool
    is_host: bool = False
    participant: Participant = None


class AuthGuard:
    """Possession-token checks against a session's participant records."""

    def verify(self, session: Session, participant_id: str, token: str) -> AuthResult:
        participant = session.find(participant_id) if participant_id else None
        if not participant or not participant.check_token(token):
            return AuthResult(valid=False)
        return AuthResult(valid=True, is_host=participant.is_host, participant=participant)

    def require_participant(self, session: Session, participant_id: str, token: str) -> Participant:
        auth = self.verify(session, participant_id, token)
        if not auth.valid:
            raise AuthError('Invalid credentials')
        return auth.participant

    def require_host(self, session: Session, participant_id: str, token: str) -> Participant:
        participant = self.require_participant(session, participant_id, token)
        if not participant.is_host:
            raise AuthError('Host access required', status_code=403)
        return participant
