from flask import Blueprint, jsonify

from kingslayer.models import now_ms

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Kingslayer game server!'})

@main.route('/api/health')
def health():
    return jsonify({'status': 'ok', 'timestamp': now_ms()})
