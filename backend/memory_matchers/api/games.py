from flask import Blueprint, jsonify, request, current_app
from memory_matchers import socketio
from memory_matchers.services.games import (
    ControllerStateError,
    InvalidGridSize,
    MemoryMatchersError,
    PersistenceError,
    parse_grid_label,
)
from memory_matchers.socketio_events import end_session
import time


games = Blueprint('games', __name__)


def _services():
    return current_app.extensions['memory_matchers']


def _controller_or_404(game_code):
    controller = _services().registry.get(game_code)
    if controller is None:
        return None, (jsonify({'error': 'Game not found'}), 404)
    return controller, None


def _json_object():
    """Request body as a dict. Empty bodies read as ``{}``; other JSON values give None."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _bad_body():
    return jsonify({'error': 'Request body must be a JSON object'}), 400


def _state_payload(game_code, controller):
    payload = controller.to_dict()
    payload['game_code'] = game_code.upper()
    return payload


def _notify(game_code):
    socketio.emit('state_update', {'game_code': game_code.upper()}, to=f"game:{game_code.upper()}", namespace='/ws')


def _requested_grid(data):
    """Read ``{'mode': 'RxC'}`` or ``{'rows': R, 'columns': C}``; None if neither."""
    if data.get('mode'):
        return parse_grid_label(data['mode'])
    rows, columns = data.get('rows'), data.get('columns')
    if rows is None and columns is None:
        return None
    for value in (rows, columns):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidGridSize('rows and columns must be whole numbers')
    return rows, columns


@games.errorhandler(MemoryMatchersError)
def handle_game_error(exc):
    if isinstance(exc, PersistenceError):
        current_app.logger.error(f"[persistence] {exc}")
        return jsonify({'error': str(exc), 'retry': True}), 503
    if isinstance(exc, ControllerStateError):
        return jsonify({'error': str(exc)}), 409
    return jsonify({'error': str(exc)}), 400


@games.route('/modes', methods=['GET'])
def list_modes():
    return jsonify({'modes': current_app.config.get('GRID_MODES') or []})


@games.route('/create', methods=['POST'])
def create_game():
    data = _json_object()
    if data is None:
        return _bad_body()
    grid = _requested_grid(data)
    app = current_app._get_current_object()
    for stale in _services().registry.sweep_idle():
        end_session(app, stale)
    code, controller = _services().registry.create()
    if grid is not None:
        try:
            controller.choose_mode(*grid)
        except MemoryMatchersError:
            _services().registry.remove(code)
            raise
    current_app.logger.info(f"[create] game_code={code} screen={controller.screen}")
    payload = _state_payload(code, controller)
    payload['message'] = 'New game created!'
    return jsonify(payload), 201


@games.route('/<string:game_code>', methods=['DELETE'])
def delete_game(game_code):
    if _services().registry.remove(game_code) is None:
        return jsonify({'error': 'Game not found'}), 404
    end_session(current_app._get_current_object(), game_code.upper())
    current_app.logger.info(f"[delete] game_code={game_code.upper()}")
    return jsonify({'message': 'Game ended'})


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    controller, error = _controller_or_404(game_code)
    if error:
        return error
    payload = _state_payload(game_code, controller)
    payload['evaluation_delay'] = float(current_app.config.get('EVALUATION_DELAY_SEC', 0.5))
    return jsonify(payload)


@games.route('/<string:game_code>/mode', methods=['POST'])
def choose_mode(game_code):
    controller, error = _controller_or_404(game_code)
    if error:
        return error
    data = _json_object()
    if data is None:
        return _bad_body()
    grid = _requested_grid(data)
    if grid is None:
        return jsonify({'error': 'mode or rows/columns are required'}), 400
    controller.choose_mode(*grid)
    _notify(game_code)
    return jsonify(_state_payload(game_code, controller))


@games.route('/<string:game_code>/tap', methods=['POST'])
def tap_card(game_code):
    controller, error = _controller_or_404(game_code)
    if error:
        return error
    data = _json_object()
    if data is None:
        return _bad_body()
    if 'index' not in data:
        return jsonify({'error': 'index is required'}), 400
    # Debounce
    try:
        debounce_ms = int(current_app.config.get('TAP_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms > 0:
        key = game_code.upper()
        last_tap_at = _services().last_tap_at
        now = time.time() * 1000.0
        if now - last_tap_at.get(key, 0) < debounce_ms:
            return jsonify({'message': 'debounced'}), 202
        last_tap_at[key] = now

    accepted = controller.tap(data['index'])
    if accepted:
        _notify(game_code)
    payload = _state_payload(game_code, controller)
    payload['accepted'] = accepted
    return jsonify(payload)


@games.route('/<string:game_code>/restart', methods=['POST'])
def restart_game(game_code):
    controller, error = _controller_or_404(game_code)
    if error:
        return error
    controller.restart()
    _notify(game_code)
    return jsonify(_state_payload(game_code, controller))


@games.route('/<string:game_code>/name', methods=['POST'])
def confirm_name(game_code):
    controller, error = _controller_or_404(game_code)
    if error:
        return error
    data = _json_object()
    if data is None:
        return _bad_body()
    record = controller.confirm_name(data.get('name'))
    _notify(game_code)
    payload = _state_payload(game_code, controller)
    payload['record'] = record.to_dict()
    return jsonify(payload), 201


@games.route('/<string:game_code>/discard', methods=['POST'])
def discard_score(game_code):
    controller, error = _controller_or_404(game_code)
    if error:
        return error
    controller.discard_score()
    _notify(game_code)
    return jsonify(_state_payload(game_code, controller))


@games.route('/<string:game_code>/scores', methods=['POST'])
def show_scores(game_code):
    controller, error = _controller_or_404(game_code)
    if error:
        return error
    controller.show_scores()
    return jsonify(_state_payload(game_code, controller))


@games.route('/<string:game_code>/menu', methods=['POST'])
def back_to_menu(game_code):
    controller, error = _controller_or_404(game_code)
    if error:
        return error
    controller.back_to_menu()
    _notify(game_code)
    return jsonify(_state_payload(game_code, controller))
