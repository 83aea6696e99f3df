from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the RPS arena server!'})


@main.route('/api/lobby', methods=['GET'])
def get_lobby_state():
    """Returns the same snapshot lobby members receive as lobbyState."""
    return jsonify(current_app.extensions['arena'].lobby_state())


@main.route('/api/matches/<string:match_id>', methods=['GET'])
def get_match_state(match_id):
    snapshot = current_app.extensions['arena'].match_state(match_id.upper())
    if snapshot is None:
        return jsonify({'error': 'Match not found'}), 404
    return jsonify(snapshot)
