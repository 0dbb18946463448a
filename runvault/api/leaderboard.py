from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from runvault.errors import ValidationError
import math

leaderboard = Blueprint('leaderboard', __name__)

def _scores():
    return current_app.extensions['leaderboard']

def _query_number(name, default):
    """Parse a numeric query arg; missing, zero or garbage means default."""
    raw = request.args.get(name)
    try:
        value = float(raw) if raw is not None else 0
    except ValueError:
        value = 0
    if not value or not math.isfinite(value):
        return default
    return value

def _clamp_limit(default_key, max_key):
    cfg = current_app.config
    default = int(cfg.get(default_key))
    value = int(_query_number('limit', default))
    return max(1, min(value, int(cfg.get(max_key))))


@leaderboard.route('/submit', methods=['POST'])
@login_required
def submit_score():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    if data.get('finalFloor') is None or data.get('finalGold') is None:
        return jsonify({'error': 'finalFloor and finalGold are required'}), 400

    entry = _scores().submit_score(
        current_user.id,
        current_user.username,
        data.get('characterId'),
        data.get('finalFloor'),
        data.get('finalGold'),
        data.get('totalEncounters') or 0,
        data.get('runDurationSeconds'),
    )
    return jsonify(entry.to_dict())


@leaderboard.route('/global', methods=['GET'])
def global_leaderboard():
    limit = _clamp_limit('LEADERBOARD_DEFAULT_LIMIT', 'LEADERBOARD_MAX_LIMIT')
    return jsonify([e.to_dict() for e in _scores().get_global_leaderboard(limit)])


@leaderboard.route('/character/<string:character_id>', methods=['GET'])
def character_leaderboard(character_id):
    limit = _clamp_limit('LEADERBOARD_DEFAULT_LIMIT', 'LEADERBOARD_MAX_LIMIT')
    return jsonify([e.to_dict() for e in _scores().get_character_leaderboard(character_id, limit)])


@leaderboard.route('/user/best', methods=['GET'])
@login_required
def user_best_scores():
    return jsonify([e.to_dict() for e in _scores().get_user_best_scores(current_user.id)])


@leaderboard.route('/user/best/<string:character_id>', methods=['GET'])
@login_required
def user_character_best(character_id):
    entry = _scores().get_user_character_best(current_user.id, character_id)
    return jsonify(entry.to_dict() if entry else None)


@leaderboard.route('/recent', methods=['GET'])
def recent_scores():
    hours_back = _query_number('hoursBack', current_app.config.get('RECENT_DEFAULT_HOURS', 24))
    limit = _clamp_limit('RECENT_DEFAULT_LIMIT', 'RECENT_MAX_LIMIT')
    return jsonify([e.to_dict() for e in _scores().get_recent_scores(max(hours_back, 0), limit)])


@leaderboard.route('/stats/global', methods=['GET'])
def global_stats():
    return jsonify(_scores().get_global_stats())
