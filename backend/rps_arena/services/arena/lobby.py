from rps_arena.models import Match, Stats
from .matches import MatchTable, ms
from .queue import MatchQueue
from .registry import SessionRegistry


def _player_names(match: Match, registry: SessionRegistry):
    players = []
    for pid in match.players:
        p = registry.get(pid)
        players.append({'id': pid, 'name': p.name if p else None})
    return players


def lobby_snapshot(registry: SessionRegistry, matches: MatchTable, queue: MatchQueue, stats: Stats, now: float):
    """Consistent view of the lobby and every active match."""
    spectators = []
    for p in registry.in_lobby():
        entry = p.to_dict()
        entry['wantsMatch'] = p.wants_match
        entry['queuePosition'] = queue.position(p.id)
        spectators.append(entry)

    active = []
    for m in matches.active():
        active.append({
            'matchId': m.id,
            'bestOf': m.best_of,
            'winsRequired': m.wins_required,
            'round': m.round,
            'players': _player_names(m, registry),
            'scores': dict(m.scores),
            'spectatorCount': len(registry.spectators_of(m.id)),
        })

    return {
        'spectators': spectators,
        'activeMatches': active,
        'globalStats': {
            'matchesCompleted': stats.matches_completed,
            'roundsResolved': stats.rounds_resolved,
            'connectedCount': len(registry),
            'queueLength': len(queue),
        },
        'serverTime': ms(now),
    }


def match_snapshot(match: Match, registry: SessionRegistry, now: float):
    """Public state of one match. Moves stay hidden until the round resolves."""
    return {
        'matchId': match.id,
        'status': match.status,
        'bestOf': match.best_of,
        'winsRequired': match.wins_required,
        'round': match.round,
        'players': _player_names(match, registry),
        'scores': dict(match.scores),
        'hasMoved': {pid: match.moves.get(pid) is not None for pid in match.players},
        'holderHint': match.first_actor,
        'expiresAt': ms(match.deadline),
        'spectatorCount': len(registry.spectators_of(match.id)),
        'serverTime': ms(now),
    }
