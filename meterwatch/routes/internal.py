"""
Internal routes: health check including replication status.
"""
from flask import Blueprint, jsonify

from meterwatch.routes.common import get_services

internal_bp = Blueprint('internal', __name__, url_prefix='/internal')


@internal_bp.route('/health')
def internal_health():
    """Health plus the state of the last poll tick."""
    sync = get_services().engine.status()
    synced = sync['lastSuccess'] is not None
    return jsonify({
        'status': 'healthy' if synced else 'degraded',
        'service': 'meterwatch',
        'internal': True,
        'sync': sync,
    }), 200 if synced else 503
