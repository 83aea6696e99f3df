from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import random
import string

LOBBY = 'lobby'

# Participant roles
SPECTATOR = 'spectator'
PLAYER = 'player'

# Match statuses
ACTIVE = 'active'
FINISHED = 'finished'


def match_scope(match_id: str) -> str:
    return f"match:{match_id}"


def generate_match_id(taken, length=6):
    """Generate a short match id not present in `taken`."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


@dataclass
class Participant:
    id: str
    name: str
    color: Optional[str] = None
    role: str = SPECTATOR
    location: Optional[str] = LOBBY
    match_id: Optional[str] = None
    spectating: Optional[str] = None
    wins: int = 0
    losses: int = 0
    wants_match: bool = False
    best_of: int = 3
    last_seen: float = 0.0

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'wins': self.wins,
            'losses': self.losses,
        }


@dataclass
class Match:
    id: str
    players: Tuple[str, str]
    best_of: int
    wins_required: int
    deadline: float
    created_at: float
    round: int = 1
    status: str = ACTIVE
    scores: Dict[str, int] = field(default_factory=dict)
    moves: Dict[str, Optional[str]] = field(default_factory=dict)
    first_actor: Optional[str] = None
    silent_extensions: int = 0

    def __post_init__(self):
        for pid in self.players:
            self.scores.setdefault(pid, 0)
            self.moves.setdefault(pid, None)
        if self.first_actor is None:
            self.first_actor = self.players[0]

    @property
    def scope(self) -> str:
        return match_scope(self.id)

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    def opponent_of(self, pid: str) -> Optional[str]:
        if pid not in self.players:
            return None
        a, b = self.players
        return b if pid == a else a

    def submitted(self):
        return [pid for pid in self.players if self.moves.get(pid)]

    def clear_moves(self) -> None:
        for pid in self.players:
            self.moves[pid] = None


@dataclass
class Stats:
    matches_completed: int = 0
    rounds_resolved: int = 0
