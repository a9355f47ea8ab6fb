"""
Sign-in / sign-out against the replicated user list.
"""
import logging

from flask import Blueprint, g, jsonify, request, session

from meterwatch.routes.common import current_snapshot, current_user, login_required
from meterwatch.services import authenticate
from meterwatch.utils.validators import normalize_username

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Plaintext credential match; no hashing, lockout or rate limiting.
    """
    data = request.get_json(silent=True) or {}
    username = normalize_username(data.get('username'))
    password = data.get('password')
    if not username or not isinstance(password, str):
        return jsonify({'error': 'username and password are required'}), 400

    user = authenticate(current_snapshot().users, username, password)
    session.clear()
    session['user_id'] = user.id
    g.current_user = user
    logger.info(f"User '{user.username}' signed in")
    return jsonify({'user': user.to_dict()}), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.pop('user_id', None)
    return jsonify({'status': 'signed out'}), 200


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'user': current_user().to_dict()}), 200
