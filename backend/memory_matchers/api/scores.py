from flask import Blueprint, jsonify, request, current_app
from memory_matchers.services.games import PersistenceError


scores = Blueprint('scores', __name__)


@scores.route('', methods=['GET'])
def list_scores():
    """All saved results, fastest first. ``?game=3x4`` narrows to one mode."""
    store = current_app.extensions['memory_matchers'].store
    try:
        records = store.all_records()
    except PersistenceError as exc:
        current_app.logger.error(f"[persistence] {exc}")
        return jsonify({'error': str(exc)}), 503
    game = request.args.get('game')
    if game:
        records = [r for r in records if r.game == game]
    records = sorted(records, key=lambda r: r.time)
    return jsonify([r.to_dict() for r in records])
