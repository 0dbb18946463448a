from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from runvault.errors import ValidationError

gamesave = Blueprint('gamesave', __name__)

def _runs():
    return current_app.extensions['run_lifecycle']

def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@gamesave.route('/save', methods=['POST'])
@login_required
def save_game():
    """
    Saves the current run. Without a runId this starts a new run and
    retires whatever run was active before.
    """
    data = _json_body()
    save = _runs().save_game(
        current_user.id,
        data.get('gameState'),
        data.get('characterId'),
        data.get('floorNumber'),
        data.get('currentGold'),
        data.get('maxFloorReached', 0),
        run_id=data.get('runId'),
    )
    return jsonify(save.to_dict())


@gamesave.route('/load', methods=['GET'])
@login_required
def load_active_game():
    save = _runs().load_active_game(current_user.id)
    return jsonify(save.to_dict() if save else None)


@gamesave.route('/load/<string:run_id>', methods=['GET'])
@login_required
def load_save(run_id):
    save = _runs().load_save_by_run_id(current_user.id, run_id)
    return jsonify(save.to_dict() if save else None)


@gamesave.route('/list', methods=['GET'])
@login_required
def list_saves():
    saves = _runs().get_user_saves(current_user.id)
    return jsonify([s.to_dict() for s in saves])


@gamesave.route('/finish/<string:run_id>', methods=['POST'])
@login_required
def finish_run(run_id):
    save = _runs().finish_run(current_user.id, run_id)
    return jsonify(save.to_dict())


@gamesave.route('/<string:run_id>', methods=['DELETE'])
@login_required
def delete_save(run_id):
    _runs().delete_save(current_user.id, run_id)
    return jsonify({'success': True})
