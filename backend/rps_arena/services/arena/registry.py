from typing import Dict, List, Optional

from rps_arena.models import LOBBY, SPECTATOR, Participant
from .events import Outbox


def clean_name(raw, default: Optional[str], max_length: int) -> Optional[str]:
    name = raw.strip() if isinstance(raw, str) else ''
    return name[:max_length] or default


class SessionRegistry:
    """Every connected participant, keyed by connection handle.

    Lookups never raise: messages may race a disconnection, so a missing
    handle is reported as None and callers treat it as a no-op.
    """

    def __init__(self, outbox: Outbox, default_name='Player', name_max_length=20, color_max_length=20,
                 default_best_of=3):
        self._outbox = outbox
        self._participants: Dict[str, Participant] = {}
        self.default_name = default_name
        self.name_max_length = name_max_length
        self.color_max_length = color_max_length
        self.default_best_of = default_best_of

    def __len__(self):
        return len(self._participants)

    def __iter__(self):
        return iter(list(self._participants.values()))

    def __contains__(self, sid):
        return sid in self._participants

    def get(self, sid) -> Optional[Participant]:
        if sid is None:
            return None
        return self._participants.get(sid)

    def register(self, sid: str, now: float) -> Participant:
        existing = self._participants.get(sid)
        if existing:
            return existing
        participant = Participant(
            id=sid,
            name=self.default_name,
            best_of=self.default_best_of,
            location=None,
            last_seen=now,
        )
        self._participants[sid] = participant
        self.relocate(participant, LOBBY)
        self._outbox.refresh_lobby()
        return participant

    def update(self, sid: str, name=None, color=None, best_of=None) -> Optional[Participant]:
        """(Re)join the lobby: rewrite identity and reset to a lobby spectator."""
        p = self._participants.get(sid)
        if not p:
            return None
        p.name = clean_name(name, self.default_name, self.name_max_length)
        p.color = clean_name(color, None, self.color_max_length)
        if best_of is not None:
            p.best_of = best_of
        self.reset_to_lobby(p)
        p.wants_match = False
        return p

    def reset_to_lobby(self, p: Participant) -> None:
        p.role = SPECTATOR
        p.match_id = None
        p.spectating = None
        self.relocate(p, LOBBY)
        self._outbox.refresh_lobby()

    def relocate(self, p: Participant, scope: Optional[str]) -> None:
        if p.location == scope:
            return
        if p.location:
            self._outbox.leave(p.id, p.location)
        if scope:
            self._outbox.join(p.id, scope)
        p.location = scope

    def remove(self, sid: str) -> Optional[Participant]:
        p = self._participants.pop(sid, None)
        if p:
            if p.location == LOBBY:
                self._outbox.refresh_lobby()
            p.location = None
        return p

    def touch(self, sid: str, now: float) -> bool:
        p = self._participants.get(sid)
        if not p:
            return False
        p.last_seen = now
        return True

    def in_lobby(self) -> List[Participant]:
        return [p for p in self._participants.values() if p.location == LOBBY]

    def spectators_of(self, match_id: str) -> List[Participant]:
        return [p for p in self._participants.values() if p.spectating == match_id]

    def stale(self, cutoff: float) -> List[Participant]:
        return [p for p in self._participants.values() if p.last_seen < cutoff]
