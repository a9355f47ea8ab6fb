"""
Reading submission, history and OCR.
"""
from flask import Blueprint, jsonify, request

from meterwatch.routes.common import (
    capability_required,
    current_snapshot,
    current_user,
    get_services,
    login_required,
    refresh_after_write,
)
from meterwatch.services.access import can_delete_readings, visible_industries
from meterwatch.services.history import readings_for_user
from meterwatch.services.persistence import READINGS
from meterwatch.utils.validators import validate_reading_payload

readings_bp = Blueprint('readings', __name__, url_prefix='/api')


@readings_bp.route('/readings', methods=['GET'])
@login_required
def list_readings():
    return jsonify({'readings': readings_for_user(current_snapshot(), current_user())}), 200


@readings_bp.route('/readings', methods=['POST'])
@login_required
def create_reading():
    """
    Store a counter reading. A repeated submission with the same id keeps
    the first stored reading and reports ``created: false``.
    """
    user = current_user()
    snapshot = current_snapshot()
    industries = visible_industries(user, snapshot.industries, snapshot.assignments)
    reading = validate_reading_payload(request.get_json(silent=True), industries, user.username)

    created = get_services().adapter.put(READINGS, reading)
    refresh_after_write()
    return jsonify({'reading': reading.to_dict(), 'created': created}), 201 if created else 200


@readings_bp.route('/readings/<reading_id>', methods=['DELETE'])
@capability_required(can_delete_readings)
def delete_reading(reading_id):
    deleted = get_services().adapter.delete(READINGS, reading_id)
    refresh_after_write()
    if not deleted:
        return jsonify({'error': 'Reading not found'}), 404
    return jsonify({'deleted': reading_id}), 200


@readings_bp.route('/ocr', methods=['POST'])
@login_required
def ocr():
    """
    Suggest a counter value from a meter photo; ``value`` is null when the
    photo could not be read and the agent should type it in.
    """
    data = request.get_json(silent=True) or {}
    image = data.get('image')
    if not isinstance(image, str) or not image:
        return jsonify({'error': "'image' data URL is required"}), 400
    return jsonify(get_services().ocr.extract(image)), 200
