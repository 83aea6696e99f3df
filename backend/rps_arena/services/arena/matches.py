import logging
from typing import Callable, Dict, List, Optional

from rps_arena.models import (FINISHED, PLAYER, Match, Stats,
                              generate_match_id)
from .events import Outbox
from .registry import SessionRegistry
from .rules import (ABANDONED, MATCH_ENDING_REASONS, MOVES_REASON, TIMEOUT,
                    is_valid_move, judge, normalize_best_of, wins_required)

logger = logging.getLogger(__name__)


def ms(ts: float) -> int:
    return int(round(ts * 1000))


class MatchTable:
    """Live table of active matches and the round state machine.

    A match is AwaitingMoves from creation until it finishes. Resolution
    runs synchronously: it either opens the next round or ends the match,
    and a finished match is removed from the table immediately.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        outbox: Outbox,
        stats: Stats,
        round_duration: float = 10.0,
        allowed_best_of=(3, 5, 7),
        max_silent_extensions: int = 0,
        on_finished: Optional[Callable[[float], None]] = None,
    ):
        self._registry = registry
        self._outbox = outbox
        self._stats = stats
        self._matches: Dict[str, Match] = {}
        self.round_duration = round_duration
        self.allowed_best_of = tuple(allowed_best_of)
        self.max_silent_extensions = max_silent_extensions
        self.on_finished = on_finished

    def __len__(self):
        return len(self._matches)

    def __contains__(self, match_id):
        return match_id in self._matches

    def get(self, match_id) -> Optional[Match]:
        if not isinstance(match_id, str):
            return None
        return self._matches.get(match_id)

    def active(self) -> List[Match]:
        return [m for m in self._matches.values() if m.is_active]

    def create(self, id_a: str, id_b: str, now: float) -> Optional[Match]:
        a, b = self._registry.get(id_a), self._registry.get(id_b)
        if not (a and b) or id_a == id_b:
            return None
        best_of = normalize_best_of(max(a.best_of, b.best_of), self.allowed_best_of, self.allowed_best_of[0])
        match = Match(
            id=generate_match_id(self._matches),
            players=(id_a, id_b),
            best_of=best_of,
            wins_required=wins_required(best_of),
            deadline=now + self.round_duration,
            created_at=now,
        )
        self._matches[match.id] = match

        for p in (a, b):
            p.role = PLAYER
            p.match_id = match.id
            p.spectating = None
            p.wants_match = False
            self._registry.relocate(p, match.scope)

        self._outbox.emit('match_start', {
            'matchId': match.id,
            'players': [a.to_dict(), b.to_dict()],
            'scores': dict(match.scores),
            'round': match.round,
            'startingPlayer': match.first_actor,
            'bestOf': match.best_of,
            'winsRequired': match.wins_required,
            'serverTime': ms(now),
        }, to=match.scope)
        self._announce_turn(match, now)
        self._outbox.refresh_lobby()
        logger.info(
            f"[match-start] match={match.id} players={a.id},{b.id} best_of={best_of} wins_required={match.wins_required}"
        )
        return match

    def submit_move(self, sid: str, match_id, move, now: float) -> bool:
        match = self.get(match_id)
        if not match or not match.is_active:
            return False
        if sid not in match.players or not is_valid_move(move):
            return False
        if now > match.deadline:
            return False
        # First move of the round sticks
        if match.moves.get(sid) is not None:
            return False
        match.moves[sid] = move
        match.silent_extensions = 0
        if len(match.submitted()) == 2:
            self.resolve(match, MOVES_REASON, now)
        return True

    def resolve(self, match: Match, reason: str, now: float, leaver: Optional[str] = None) -> Optional[str]:
        """Resolve the current round and return the round winner, if any."""
        if not match.is_active:
            return None
        a, b = match.players
        winner = None
        if reason == MOVES_REASON:
            outcome = judge(match.moves[a], match.moves[b])
            if outcome > 0:
                winner = a
            elif outcome < 0:
                winner = b
        elif reason == TIMEOUT:
            submitted = match.submitted()
            if len(submitted) == 1:
                winner = submitted[0]
        elif reason in MATCH_ENDING_REASONS:
            winner = match.opponent_of(leaver)

        self._stats.rounds_resolved += 1
        if winner:
            match.scores[winner] += 1

        self._outbox.emit('round_result', {
            'matchId': match.id,
            'round': match.round,
            'winnerId': winner,
            'reason': reason,
            'scores': dict(match.scores),
            'revealedMoves': dict(match.moves),
            'serverTime': ms(now),
        }, to=match.scope)
        logger.info(f"[round] match={match.id} round={match.round} reason={reason} winner={winner} scores={match.scores}")

        if reason in MATCH_ENDING_REASONS or any(s >= match.wins_required for s in match.scores.values()):
            self.end_match(match, winner, reason, now)
            return winner

        match.round += 1
        match.clear_moves()
        match.first_actor = match.opponent_of(match.first_actor)
        match.deadline = now + self.round_duration
        match.silent_extensions = 0
        self._announce_turn(match, now)
        self._outbox.refresh_lobby()
        return winner

    def forfeit(self, sid: str, reason: str, now: float) -> bool:
        p = self._registry.get(sid)
        if not p or not p.match_id:
            return False
        match = self.get(p.match_id)
        if not match or not match.is_active or sid not in match.players:
            return False
        self.resolve(match, reason, now, leaver=sid)
        return True

    def extend(self, match: Match, now: float) -> None:
        """Push the deadline of a round nobody has played in."""
        match.silent_extensions += 1
        if self.max_silent_extensions and match.silent_extensions >= self.max_silent_extensions:
            logger.info(f"[match-abandon] match={match.id} silent_rounds={match.silent_extensions}")
            self.end_match(match, None, ABANDONED, now)
            return
        match.deadline = now + self.round_duration
        logger.info(f"[deadline-extend] match={match.id} round={match.round} count={match.silent_extensions}")
        self._announce_turn(match, now)

    def end_match(self, match: Match, winner: Optional[str], reason: str, now: float) -> None:
        if match.status == FINISHED:
            return
        match.status = FINISHED
        self._stats.matches_completed += 1

        loser = match.opponent_of(winner) if winner else None
        pw, pl = self._registry.get(winner), self._registry.get(loser)
        if pw and pl:
            pw.wins += 1
            pl.losses += 1

        self._outbox.emit('game_end', {
            'matchId': match.id,
            'winnerId': winner,
            'finalScores': dict(match.scores),
            'reason': reason,
            'winsRequired': match.wins_required,
            'serverTime': ms(now),
        }, to=match.scope)

        for pid in match.players:
            p = self._registry.get(pid)
            if p and p.match_id == match.id:
                self._registry.reset_to_lobby(p)
        for p in self._registry.spectators_of(match.id):
            self._registry.reset_to_lobby(p)

        self._matches.pop(match.id, None)
        self._outbox.refresh_lobby()
        logger.info(f"[match-end] match={match.id} winner={winner} reason={reason} scores={match.scores}")

        if self.on_finished:
            self.on_finished(now)

    def _announce_turn(self, match: Match, now: float) -> None:
        self._outbox.emit('turnUpdate', {
            'matchId': match.id,
            'holderHint': match.first_actor,
            'expiresAt': ms(match.deadline),
            'durationMs': ms(match.deadline - now),
            'round': match.round,
            'serverTime': ms(now),
        }, to=match.scope)
