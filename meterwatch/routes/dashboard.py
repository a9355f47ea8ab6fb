"""
Read-only views of the latest snapshot, narrowed to what the caller may see.
"""
from flask import Blueprint, jsonify

from meterwatch.routes.common import current_snapshot, current_user, login_required
from meterwatch.services.access import visible_industries
from meterwatch.services.history import dashboard

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api')


@dashboard_bp.route('/dashboard')
@login_required
def get_dashboard():
    return jsonify(dashboard(current_snapshot(), current_user())), 200


@dashboard_bp.route('/industries')
@login_required
def list_industries():
    snapshot = current_snapshot()
    industries = visible_industries(current_user(), snapshot.industries, snapshot.assignments)
    return jsonify({'industries': [i.to_dict() for i in industries]}), 200
