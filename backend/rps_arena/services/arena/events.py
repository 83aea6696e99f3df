from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Emit:
    event: str
    payload: Dict[str, Any]
    to: str


@dataclass(frozen=True)
class JoinScope:
    sid: str
    scope: str


@dataclass(frozen=True)
class LeaveScope:
    sid: str
    scope: str


@dataclass(frozen=True)
class ForceDisconnect:
    sid: str


@dataclass
class Outbox:
    """Ordered list of transport commands produced by one unit of work.

    Commands are replayed in order, so a participant joins a match scope
    before anything is emitted to it.
    """

    commands: List[Any] = field(default_factory=list)
    lobby_dirty: bool = False

    def emit(self, event: str, payload: Dict[str, Any], to: str) -> None:
        self.commands.append(Emit(event, payload, to))

    def join(self, sid: str, scope: str) -> None:
        self.commands.append(JoinScope(sid, scope))

    def leave(self, sid: str, scope: str) -> None:
        self.commands.append(LeaveScope(sid, scope))

    def disconnect(self, sid: str) -> None:
        self.commands.append(ForceDisconnect(sid))

    def refresh_lobby(self) -> None:
        self.lobby_dirty = True

    def drain(self) -> List[Any]:
        commands, self.commands = self.commands, []
        self.lobby_dirty = False
        return commands
