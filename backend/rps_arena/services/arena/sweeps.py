import logging
import time
from typing import Set

from rps_arena import socketio
from .rules import MOVES_REASON, TIMEOUT

logger = logging.getLogger(__name__)

_started_apps: Set[int] = set()


def expire_rounds(matches, now: float) -> int:
    """Enforce round deadlines across all active matches.

    A round with exactly one move resolves as a timeout. A round nobody
    played in is never resolved; its deadline is pushed out instead.
    """
    expired = 0
    for match in matches.active():
        if not match.is_active or now <= match.deadline:
            continue
        expired += 1
        submitted = match.submitted()
        if len(submitted) == 1:
            matches.resolve(match, TIMEOUT, now)
        elif submitted:
            matches.resolve(match, MOVES_REASON, now)
        else:
            matches.extend(match, now)
    return expired


def evict_stale(registry, now: float, stale_after: float, addressable, cleanup, outbox) -> int:
    """Evict participants whose last liveness signal is too old.

    Reachable sockets are force-disconnected so the transport's own
    disconnect handler runs the cleanup; unreachable ones are cleaned up
    here directly.
    """
    evicted = 0
    for p in registry.stale(now - stale_after):
        evicted += 1
        if addressable(p.id):
            logger.info(f"[liveness-evict] sid={p.id} idle={now - p.last_seen:.1f}s action=disconnect")
            outbox.disconnect(p.id)
        else:
            logger.info(f"[liveness-evict] sid={p.id} idle={now - p.last_seen:.1f}s action=cleanup")
            cleanup(p.id, now)
    return evicted


def start_sweeps(app) -> None:
    """Start the deadline, liveness and lobby refresh loops for `app`.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Starts each loop at most once per app
    - A zero or negative interval disables that loop
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    if id(app) in _started_apps:
        return
    _started_apps.add(id(app))

    arena = app.extensions['arena']
    loops = (
        ('deadline', float(app.config.get('DEADLINE_SWEEP_INTERVAL_SEC', 0.25)), arena.sweep_deadlines),
        ('liveness', float(app.config.get('LIVENESS_SWEEP_INTERVAL_SEC', 5)), arena.sweep_liveness),
        ('lobby', float(app.config.get('LOBBY_REFRESH_SEC', 5)), arena.refresh_lobby),
    )
    for name, interval, tick in loops:
        if interval <= 0:
            continue
        socketio.start_background_task(_worker, app, name, interval, tick)


def _worker(app, name: str, interval: float, tick) -> None:
    hb = float(app.config.get('SWEEP_HEARTBEAT_SEC', 0) or 0)
    last_hb = time.time()
    ticks = 0
    app.logger.info(f"[sweep-start] sweep={name} interval={interval}s")
    while True:
        socketio.sleep(interval)
        with app.app_context():
            try:
                tick()
            except Exception:
                app.logger.exception(f"[sweep-error] sweep={name}")
        ticks += 1
        if hb > 0 and time.time() - last_hb >= hb:
            last_hb = time.time()
            app.logger.info(f"[sweep-heartbeat] sweep={name} ticks={ticks}")
