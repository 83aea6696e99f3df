from flask import current_app, request
from typing import Any, Dict, Iterable

from rps_arena import NAMESPACE, socketio
from rps_arena.services.arena.events import Emit, ForceDisconnect, JoinScope, LeaveScope


def _arena():
    return current_app.extensions['arena']


def _get_sid() -> str:
    return request.sid


def _fields(data) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


def handle_connect(auth=None):
    _arena().connect(_get_sid())


def handle_disconnect(reason=None):
    _arena().disconnect(_get_sid())


def handle_join_lobby(data=None):
    data = _fields(data)
    _arena().join_lobby(
        _get_sid(),
        name=data.get('name'),
        color=data.get('colorPref'),
        best_of=data.get('bestOf'),
    )


def handle_set_queue_status(data=None):
    data = _fields(data)
    _arena().set_queue_status(_get_sid(), bool(data.get('wantsMatch')), best_of=data.get('bestOf'))


def handle_player_move(data=None):
    data = _fields(data)
    _arena().player_move(_get_sid(), data.get('matchId'), data.get('move'))


def handle_spectate_match(data=None):
    data = _fields(data)
    _arena().spectate(_get_sid(), data.get('matchId'))


def handle_leave_spectate(data=None):
    _arena().leave_spectate(_get_sid())


def handle_chat_message(data=None):
    data = _fields(data)
    _arena().chat(_get_sid(), data.get('matchId'), data.get('text'))


def handle_request_rematch(data=None):
    _arena().request_rematch(_get_sid())


def handle_leave_match(data=None):
    _arena().leave_match(_get_sid())


def handle_heartbeat(data=None):
    data = _fields(data)
    _arena().heartbeat(_get_sid(), data.get('timestamp'))


# ---- Transport helpers ----

def is_addressable(sid: str) -> bool:
    """True while the Socket.IO server can still deliver to `sid`."""
    server = socketio.server
    if server is None:
        return False
    return server.manager.is_connected(sid, NAMESPACE)


def flush(commands: Iterable[Any]) -> None:
    """Replay arena commands onto the Socket.IO server, in order.

    Installed as the arena's transport, so it always runs under the arena lock.
    """
    for cmd in commands or ():
        if isinstance(cmd, Emit):
            socketio.emit(cmd.event, cmd.payload, to=cmd.to, namespace=NAMESPACE)
        elif isinstance(cmd, JoinScope):
            if is_addressable(cmd.sid):
                socketio.server.enter_room(cmd.sid, cmd.scope, namespace=NAMESPACE)
        elif isinstance(cmd, LeaveScope):
            if is_addressable(cmd.sid):
                socketio.server.leave_room(cmd.sid, cmd.scope, namespace=NAMESPACE)
        elif isinstance(cmd, ForceDisconnect):
            if is_addressable(cmd.sid):
                socketio.server.disconnect(cmd.sid, namespace=NAMESPACE)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('joinLobby', handle_join_lobby, namespace=NAMESPACE)
    socketio.on_event('setQueueStatus', handle_set_queue_status, namespace=NAMESPACE)
    socketio.on_event('playerMove', handle_player_move, namespace=NAMESPACE)
    socketio.on_event('spectateMatch', handle_spectate_match, namespace=NAMESPACE)
    socketio.on_event('leaveSpectate', handle_leave_spectate, namespace=NAMESPACE)
    socketio.on_event('chatMessage', handle_chat_message, namespace=NAMESPACE)
    socketio.on_event('requestRematch', handle_request_rematch, namespace=NAMESPACE)
    socketio.on_event('leaveMatch', handle_leave_match, namespace=NAMESPACE)
    socketio.on_event('heartbeat', handle_heartbeat, namespace=NAMESPACE)
