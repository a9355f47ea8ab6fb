"""
Admin routes: user management, industry import and assignments.
"""
from flask import Blueprint, current_app, jsonify, request

from meterwatch.errors import MalformedInputError
from meterwatch.routes.common import (
    capability_required,
    current_snapshot,
    get_services,
    refresh_after_write,
)
from meterwatch.services import admin
from meterwatch.services.access import (
    can_assign_industries,
    can_import_industries,
    can_manage_users,
)
from meterwatch.services.importer import industries_from_rows, rows_from_file
from meterwatch.utils.validators import (
    normalize_username,
    validate_industry_ids,
    validate_industry_payload,
    validate_user_payload,
)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


@admin_bp.route('/users', methods=['GET'])
@capability_required(can_manage_users)
def list_users():
    snapshot = current_snapshot()
    return jsonify({
        'users': [u.to_dict() for u in snapshot.users],
        'assignments': {
            username: [i.id for i in industries]
            for username, industries in snapshot.assignments.items()
        },
    }), 200


@admin_bp.route('/users', methods=['POST'])
@capability_required(can_manage_users)
def create_user():
    data = request.get_json(silent=True) or {}
    # New accounts always get a fresh id
    data.pop('id', None)
    user = validate_user_payload(data)
    admin.add_user(get_services().adapter, current_snapshot(), user)
    refresh_after_write()
    return jsonify({'user': user.to_dict()}), 201


@admin_bp.route('/users/<user_id>', methods=['PUT'])
@capability_required(can_manage_users)
def replace_user(user_id):
    user = validate_user_payload(request.get_json(silent=True), user_id=user_id)
    admin.replace_user(get_services().adapter, current_snapshot(), user)
    refresh_after_write()
    return jsonify({'user': user.to_dict()}), 200


@admin_bp.route('/users/<user_id>', methods=['DELETE'])
@capability_required(can_manage_users)
def delete_user(user_id):
    deleted = admin.delete_user(get_services().adapter, user_id)
    refresh_after_write()
    if not deleted:
        return jsonify({'error': 'User not found'}), 404
    return jsonify({'deleted': user_id}), 200


@admin_bp.route('/industries', methods=['PUT'])
@capability_required(can_import_industries)
def put_industries():
    """Upsert industries given as JSON records."""
    data = request.get_json(silent=True)
    if not isinstance(data, list):
        raise MalformedInputError("Expected a JSON list of industries")
    industries = [validate_industry_payload(item) for item in data]
    applied = get_services().adapter.bulk_put(industries)
    refresh_after_write()
    return jsonify({'saved': applied}), 200


@admin_bp.route('/industries/import', methods=['POST'])
@capability_required(can_import_industries)
def import_industries():
    """
    Import industries from an uploaded .xlsx/.csv file or a JSON list of rows.
    """
    upload = request.files.get('file')
    if upload is not None:
        rows = rows_from_file(upload.stream, upload.filename)
    else:
        rows = request.get_json(silent=True)
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise MalformedInputError("Upload a 'file' or post a JSON list of rows")

    result = industries_from_rows(rows, current_app.config['DEFAULT_ALLOWED_DAILY_CONSUMPTION'])
    admin.import_industries(get_services().adapter, result)
    refresh_after_write()
    return jsonify(result.to_dict()), 200


@admin_bp.route('/assignments/<username>', methods=['PUT'])
@capability_required(can_assign_industries)
def put_assignment(username):
    """Replace (not merge) the industries assigned to a username."""
    username = normalize_username(username)
    if not username:
        raise MalformedInputError("Invalid username")
    data = request.get_json(silent=True) or {}
    snapshot = current_snapshot()
    industries = validate_industry_ids(data.get('industryIds'), snapshot.industries)
    admin.assign_industries(get_services().adapter, username, industries)
    refresh_after_write()
    return jsonify({'username': username, 'industryIds': [i.id for i in industries]}), 200
