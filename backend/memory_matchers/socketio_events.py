from flask_socketio import join_room, leave_room, emit
from memory_matchers import socketio
from flask import current_app, request
from memory_matchers.services.games import Matched, Mismatch, Won
from typing import Dict, Any
import time


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # If this socket owned a game and no other owner socket remains,
    # drop the live session for that game code
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    game_code = ctx.get('game_code')
    if ctx.get('is_session_owner') and game_code:
        _owner_count[game_code] = max(0, _owner_count.get(game_code, 0) - 1)
        app = current_app._get_current_object()
        # In tests, end immediately for determinism; in prod, allow grace period
        if app.config.get('TESTING'):
            if _owner_count.get(game_code, 0) == 0:
                end_session(app, game_code)
            return
        _schedule_end_if_no_owner(app, game_code, float(app.config.get('SESSION_END_GRACE_SEC', 2.0)))


def handle_join_game(data):
    game_code = (data or {}).get('game_code')
    is_session_owner = bool((data or {}).get('is_session_owner'))
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    code = game_code.upper()
    room = f"game:{code}"
    join_room(room)
    _sid_to_ctx[_get_sid()] = {'game_code': code, 'is_session_owner': is_session_owner}
    if is_session_owner:
        _owner_count[code] = _owner_count.get(code, 0) + 1
        _cancel_scheduled_end(code)
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    code = game_code.upper()
    room = f"game:{code}"
    leave_room(room)
    emit('left', {'room': room})
    # An owner leaving explicitly ends the session immediately
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('is_session_owner') and ctx.get('game_code') == code:
        _owner_count[code] = max(0, _owner_count.get(code, 0) - 1)
        ctx['is_session_owner'] = False
        end_session(current_app._get_current_object(), code)


def handle_ping(data):
    emit('pong', data or {})


def broadcast_game_event(game_code: str, event) -> None:
    """Relay a session event to everyone watching the game room.

    Sound and animation clients subscribe to these; the engine itself never
    waits on them.
    """
    room = f"game:{game_code}"
    if isinstance(event, Matched):
        socketio.emit('matched', {'game_code': game_code, 'indices': list(event.indices), 'face': event.face},
                      to=room, namespace='/ws')
    elif isinstance(event, Mismatch):
        socketio.emit('mismatch', {'game_code': game_code, 'indices': list(event.indices)},
                      to=room, namespace='/ws')
    elif isinstance(event, Won):
        socketio.emit('won', {'game_code': game_code, 'elapsed': event.elapsed, 'game': event.game},
                      to=room, namespace='/ws')
    socketio.emit('state_update', {'game_code': game_code}, to=room, namespace='/ws')

# ---- Session owner lifecycle helpers ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_owner_count: Dict[str, int] = {}
_end_deadline: Dict[str, float] = {}

def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def end_session(app, game_code: str) -> None:
    """End the session: notify clients and drop the live game."""
    # Use socketio.emit since this may be called from a background task
    socketio.emit('session_ended', {'game_code': game_code}, to=f"game:{game_code}", namespace='/ws')
    try:
        services = app.extensions['memory_matchers']
        services.forget(game_code)
        if services.registry.remove(game_code) is not None:
            app.logger.info(f"[session-end] game_code={game_code}")
    finally:
        _owner_count.pop(game_code, None)
        _end_deadline.pop(game_code, None)

def _schedule_end_if_no_owner(app, game_code: str, delay_sec: float = 2.0) -> None:
    if _owner_count.get(game_code, 0) > 0:
        return
    _end_deadline[game_code] = time.time() + delay_sec

    def _runner(code: str, deadline: float):
        sleep_for = max(0.0, deadline - time.time())
        if sleep_for:
            socketio.sleep(sleep_for)
        if _owner_count.get(code, 0) == 0 and _end_deadline.get(code) == deadline:
            end_session(app, code)

    socketio.start_background_task(_runner, game_code, _end_deadline[game_code])

def _cancel_scheduled_end(game_code: str) -> None:
    _end_deadline.pop(game_code, None)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('disconnect', handle_disconnect, namespace='/ws')
    socketio.on_event('join_game', handle_join_game, namespace='/ws')
    socketio.on_event('leave_game', handle_leave_game, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')
