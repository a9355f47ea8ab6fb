"""
Public health route.
"""
from flask import Blueprint, jsonify

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Health check endpoint for uptime monitoring."""
    return jsonify({
        'status': 'healthy',
        'service': 'meterwatch'
    }), 200
