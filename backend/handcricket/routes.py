from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    engine = current_app.extensions['match_engine']
    return jsonify({'message': 'Hand Cricket Backend Running 🏏', 'rooms': len(engine.registry)})

@main.route('/rooms/<string:room_id>')
def room_state(room_id):
    engine = current_app.extensions['match_engine']
    state = engine.registry.get(room_id)
    if state is None:
        return jsonify({'error': 'Room not found'}), 404
    with state.lock:
        return jsonify(state.to_dict()), 200
