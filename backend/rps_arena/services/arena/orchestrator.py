import functools
import logging
import threading
import time
from typing import Any, Callable, List, Optional

from rps_arena.models import LOBBY, Stats
from .events import Outbox
from .lobby import lobby_snapshot, match_snapshot
from .matches import MatchTable, ms
from .queue import MatchQueue
from .registry import SessionRegistry
from .rules import DISCONNECT, FORFEIT, normalize_best_of
from .sweeps import evict_stale, expire_rounds

logger = logging.getLogger(__name__)


def _serialized(fn):
    """Run one unit of work under the arena lock and return its commands."""
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            fn(self, self.clock(), *args, **kwargs)
            return self._publish()
    return wrapper


def _intention(fn):
    """Like _serialized, for inbound messages: any message counts as liveness."""
    @functools.wraps(fn)
    def wrapper(self, sid, *args, **kwargs):
        with self._lock:
            now = self.clock()
            self.registry.touch(sid, now)
            fn(self, now, sid, *args, **kwargs)
            return self._publish()
    return wrapper


class Arena:
    """Single entry point for socket handlers and sweeps.

    Every public operation runs to completion under one re-entrant lock and
    returns the ordered transport commands it produced. Invalid intentions
    are silent no-ops and return no commands.
    """

    def __init__(
        self,
        round_duration: float = 10.0,
        heartbeat_stale: float = 30.0,
        default_best_of: int = 3,
        allowed_best_of=(3, 5, 7),
        default_name: str = 'Player',
        name_max_length: int = 20,
        color_max_length: int = 20,
        chat_max_length: int = 200,
        max_silent_extensions: int = 0,
        clock: Callable[[], float] = time.time,
        addressable: Optional[Callable[[str], bool]] = None,
        transport: Optional[Callable[[List[Any]], None]] = None,
    ):
        self._lock = threading.RLock()
        self.clock = clock
        self.addressable = addressable or (lambda sid: False)
        self.transport = transport
        self.heartbeat_stale = heartbeat_stale
        self.chat_max_length = chat_max_length
        self.allowed_best_of = tuple(sorted(allowed_best_of))
        self.outbox = Outbox()
        self.stats = Stats()
        self.registry = SessionRegistry(
            self.outbox,
            default_name=default_name,
            name_max_length=name_max_length,
            color_max_length=color_max_length,
            default_best_of=self._best_of(default_best_of),
        )
        self.queue = MatchQueue()
        self.matches = MatchTable(
            self.registry,
            self.outbox,
            self.stats,
            round_duration=round_duration,
            allowed_best_of=self.allowed_best_of,
            max_silent_extensions=max_silent_extensions,
            on_finished=self._pair_queue,
        )

    @classmethod
    def from_config(cls, config, **kwargs):
        return cls(
            round_duration=float(config.get('ROUND_DURATION_SEC', 10)),
            heartbeat_stale=float(config.get('HEARTBEAT_STALE_SEC', 30)),
            default_best_of=int(config.get('DEFAULT_BEST_OF', 3)),
            allowed_best_of=tuple(int(x) for x in config.get('ALLOWED_BEST_OF', (3, 5, 7))),
            default_name=config.get('DEFAULT_NAME', 'Player'),
            name_max_length=int(config.get('NAME_MAX_LENGTH', 20)),
            color_max_length=int(config.get('COLOR_MAX_LENGTH', 20)),
            chat_max_length=int(config.get('CHAT_MAX_LENGTH', 200)),
            max_silent_extensions=int(config.get('MAX_SILENT_EXTENSIONS', 0)),
            **kwargs,
        )

    # ---- Inbound intentions ----

    @_serialized
    def connect(self, now, sid):
        self.registry.register(sid, now)
        self.outbox.emit('connected', {'id': sid, 'serverTime': ms(now)}, to=sid)
        logger.info(f"[connect] sid={sid} connected={len(self.registry)}")

    @_intention
    def join_lobby(self, now, sid, name=None, color=None, best_of=None):
        p = self.registry.get(sid)
        if not p:
            return
        if p.match_id:
            self.matches.forfeit(sid, FORFEIT, now)
        self.queue.discard(sid)
        self.registry.update(sid, name, color, self._best_of(best_of) if best_of is not None else None)

    @_intention
    def set_queue_status(self, now, sid, wants_match, best_of=None):
        p = self.registry.get(sid)
        if not p:
            return
        if best_of is not None:
            p.best_of = self._best_of(best_of)
        if wants_match:
            self._enqueue(p, now)
        elif p.wants_match or sid in self.queue:
            p.wants_match = False
            self.queue.discard(sid)
            self.outbox.refresh_lobby()

    @_intention
    def player_move(self, now, sid, match_id, move):
        if not self.matches.submit_move(sid, match_id, move, now):
            logger.debug(f"[move-reject] sid={sid} match={match_id}")

    @_intention
    def spectate(self, now, sid, match_id):
        p = self.registry.get(sid)
        match = self.matches.get(match_id)
        if not p or not match or not match.is_active:
            return
        if p.match_id or sid in match.players:
            return
        self.queue.discard(sid)
        p.wants_match = False
        p.spectating = match.id
        self.registry.relocate(p, match.scope)
        self.outbox.emit('match_snapshot', match_snapshot(match, self.registry, now), to=sid)
        self.outbox.refresh_lobby()

    @_intention
    def leave_spectate(self, now, sid):
        p = self.registry.get(sid)
        if not p or not p.spectating:
            return
        self.registry.reset_to_lobby(p)

    @_intention
    def chat(self, now, sid, match_id, text):
        p = self.registry.get(sid)
        match = self.matches.get(match_id)
        if not p or not match or not match.is_active:
            return
        if sid not in match.players or p.match_id != match.id:
            return
        text = text.strip()[:self.chat_max_length] if isinstance(text, str) else ''
        if not text:
            return
        self.outbox.emit('chatMessage', {
            'matchId': match.id,
            'fromId': sid,
            'fromName': p.name,
            'text': text,
            'timestamp': ms(now),
        }, to=match.scope)

    @_intention
    def request_rematch(self, now, sid):
        p = self.registry.get(sid)
        if p:
            self._enqueue(p, now)

    @_intention
    def leave_match(self, now, sid):
        self.matches.forfeit(sid, FORFEIT, now)

    @_intention
    def heartbeat(self, now, sid, timestamp=None):
        if sid in self.registry:
            self.outbox.emit('heartbeat_ack', {'clientTimestamp': timestamp, 'serverTime': ms(now)}, to=sid)

    @_serialized
    def disconnect(self, now, sid):
        self._cleanup(sid, now)

    # ---- Periodic work ----

    @_serialized
    def sweep_deadlines(self, now):
        expire_rounds(self.matches, now)

    @_serialized
    def sweep_liveness(self, now):
        evict_stale(self.registry, now, self.heartbeat_stale, self.addressable, self._cleanup, self.outbox)

    @_serialized
    def refresh_lobby(self, now):
        self.outbox.refresh_lobby()

    # ---- Read-only views ----

    def lobby_state(self):
        with self._lock:
            return lobby_snapshot(self.registry, self.matches, self.queue, self.stats, self.clock())

    def match_state(self, match_id):
        with self._lock:
            match = self.matches.get(match_id)
            if not match:
                return None
            return match_snapshot(match, self.registry, self.clock())

    # ---- Internals ----

    def _best_of(self, value) -> int:
        return normalize_best_of(value, self.allowed_best_of, self.allowed_best_of[0])

    def _eligible(self, sid: str) -> bool:
        p = self.registry.get(sid)
        return bool(p and p.wants_match and p.location == LOBBY and not p.match_id)

    def _enqueue(self, p, now: float) -> None:
        if p.match_id or p.location != LOBBY:
            return
        p.wants_match = True
        self.queue.set_desired(p.id, True)
        self.outbox.refresh_lobby()
        self._pair_queue(now)

    def _pair_queue(self, now: float) -> None:
        for a, b in self.queue.try_pair_all(self._eligible):
            logger.info(f"[pair] {a} vs {b}")
            self.matches.create(a, b, now)

    def _cleanup(self, sid: str, now: float) -> None:
        """Disconnect path: dequeue, forfeit any live match, drop the record."""
        self.queue.discard(sid)
        p = self.registry.get(sid)
        if not p:
            return
        if p.match_id:
            self.matches.forfeit(sid, DISCONNECT, now)
        if p.spectating:
            p.spectating = None
            self.outbox.refresh_lobby()
        self.registry.remove(sid)
        logger.info(f"[leave] sid={sid} connected={len(self.registry)}")

    def _drain(self):
        if self.outbox.lobby_dirty:
            snapshot = lobby_snapshot(self.registry, self.matches, self.queue, self.stats, self.clock())
            self.outbox.emit('lobbyState', snapshot, to=LOBBY)
        return self.outbox.drain()

    def _publish(self):
        """Drain the outbox and hand the commands to the transport.

        Runs with the lock held so the transport sees units in the same
        order the lock admitted them. A forced disconnect re-enters the
        arena on this thread through the transport's disconnect handler.
        """
        commands = self._drain()
        if self.transport is not None and commands:
            self.transport(commands)
        return commands
