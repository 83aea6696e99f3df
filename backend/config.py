import os


def _csv(value):
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '3000'))
    CORS_ORIGINS = _csv(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000',
    ))
    # Round timer (seconds)
    ROUND_DURATION_SEC = float(os.environ.get('ROUND_DURATION_SEC', '10'))
    # Sweep periods (seconds). 0 disables a sweep.
    DEADLINE_SWEEP_INTERVAL_SEC = float(os.environ.get('DEADLINE_SWEEP_INTERVAL_SEC', '0.25'))
    LIVENESS_SWEEP_INTERVAL_SEC = float(os.environ.get('LIVENESS_SWEEP_INTERVAL_SEC', '5'))
    LOBBY_REFRESH_SEC = float(os.environ.get('LOBBY_REFRESH_SEC', '5'))
    # Participants silent for longer than this are evicted
    HEARTBEAT_STALE_SEC = float(os.environ.get('HEARTBEAT_STALE_SEC', '30'))
    # Match length
    DEFAULT_BEST_OF = int(os.environ.get('DEFAULT_BEST_OF', '3'))
    ALLOWED_BEST_OF = tuple(int(v) for v in _csv(os.environ.get('ALLOWED_BEST_OF', '3,5,7')))
    # Identity and chat limits
    DEFAULT_NAME = os.environ.get('DEFAULT_NAME', 'Player')
    NAME_MAX_LENGTH = int(os.environ.get('NAME_MAX_LENGTH', '20'))
    COLOR_MAX_LENGTH = int(os.environ.get('COLOR_MAX_LENGTH', '20'))
    CHAT_MAX_LENGTH = int(os.environ.get('CHAT_MAX_LENGTH', '200'))
    # Optional: end a match after this many consecutive silent rounds. 0 disables.
    MAX_SILENT_EXTENSIONS = int(os.environ.get('MAX_SILENT_EXTENSIONS', '0'))
    # Optional: heartbeat interval for sweep worker logs (sec). 0 disables.
    SWEEP_HEARTBEAT_SEC = int(os.environ.get('SWEEP_HEARTBEAT_SEC', '0'))
