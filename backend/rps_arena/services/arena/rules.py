import math

MOVES = ('rock', 'paper', 'scissors')

# move -> the move it beats
BEATS = {
    'rock': 'scissors',
    'scissors': 'paper',
    'paper': 'rock',
}

# Resolution reasons
MOVES_REASON = 'moves'
TIMEOUT = 'timeout'
DISCONNECT = 'disconnect'
FORFEIT = 'forfeit'
ABANDONED = 'abandoned'

MATCH_ENDING_REASONS = (DISCONNECT, FORFEIT)


def is_valid_move(move) -> bool:
    return isinstance(move, str) and move in BEATS


def judge(a: str, b: str) -> int:
    """Compare two moves: 1 if `a` wins, -1 if `b` wins, 0 on a tie."""
    if a == b:
        return 0
    return 1 if BEATS[a] == b else -1


def normalize_best_of(value, allowed=(3, 5, 7), default=3) -> int:
    """Clamp a requested best-of into the allowed odd set.

    Values between allowed entries round up; out of range values clamp to
    the nearest end.
    """
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    allowed = sorted(allowed)
    for option in allowed:
        if value <= option:
            return option
    return allowed[-1]


def wins_required(best_of: int) -> int:
    return math.ceil(best_of / 2)
