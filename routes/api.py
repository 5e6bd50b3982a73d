from flask import Blueprint, jsonify, request

from config import Config
from decorators import admin_required, roles_required
from extensions import csrf, get_services, limiter
from models import HardwareEvent, _payload_value

api_bp = Blueprint('api', __name__, url_prefix='/api')
csrf.exempt(api_bp)
limiter.limit(Config.API_RATE_LIMIT)(api_bp)

ALL_ROLES = ('admin', 'instructor', 'student')
HARDWARE_EVENTS = ('rfid_scan', 'scanner_status', 'sms_status', 'error')


@api_bp.route('/health', methods=['GET'])
def health_check():
    return jsonify({'status': 'ok'})


@api_bp.route('/status', methods=['GET'])
@roles_required(*ALL_ROLES)
def status():
    services = get_services()
    scanner = services.scanner
    return jsonify({
        'scanner': scanner.status.to_dict(),
        'smsModule': services.sms.module_status.to_dict(),
        'isScanning': scanner.is_scanning,
        'scanResult': scanner.scan_result,
        'scannedStudent': scanner.scanned_student.to_dict() if scanner.scanned_student else None,
        'smsStatus': scanner.sms_status,
        'lastScan': scanner.last_scan.to_dict() if scanner.last_scan else None,
        'pendingScan': scanner.pending_scan.to_dict() if scanner.pending_scan else None,
        'recentScans': [event.to_dict() for event in scanner.recent_scans],
    })


@api_bp.route('/stats', methods=['GET'])
@roles_required(*ALL_ROLES)
def stats():
    services = get_services()
    return jsonify({
        'attendance': services.ledger.stats(),
        'attendanceRate': services.ledger.attendance_rate(),
        'sms': services.sms.stats(),
    })


@api_bp.route('/notifications', methods=['GET'])
@roles_required(*ALL_ROLES)
def notifications():
    return jsonify({'notifications': [toast.to_dict() for toast in get_services().notifications.active()]})


@api_bp.route('/notifications/<toast_id>/dismiss', methods=['POST'])
@roles_required(*ALL_ROLES)
def dismiss_notification(toast_id):
    if not get_services().notifications.dismiss(toast_id):
        return jsonify({'success': False, 'message': 'Notification not found'}), 404
    return jsonify({'success': True})


@api_bp.route('/students', methods=['GET'])
@roles_required('admin', 'instructor')
def students():
    query = request.args.get('q')
    return jsonify({'students': [s.to_dict() for s in get_services().directory.search(query)]})


@api_bp.route('/scan', methods=['POST'])
@roles_required('admin', 'instructor')
def scan():
    data = request.get_json(silent=True) or {}
    rfid = _payload_value(data, 'rfid', 'rfidCardId', 'rfid_card_id')
    if not rfid:
        return jsonify({'success': False, 'message': 'RFID card id is required'}), 400
    try:
        get_services().scanner.simulate(str(rfid))
    except ValueError as exc:
        return jsonify({'success': False, 'message': str(exc)}), 400
    return jsonify({'success': True, 'message': 'Scan queued'}), 202


@api_bp.route('/hardware-events', methods=['POST'])
@admin_required
def hardware_event():
    """Feed a reader or modem event, as a connected device would."""
    data = request.get_json(silent=True) or {}
    event_type = data.get('type')
    if event_type not in HARDWARE_EVENTS:
        return jsonify({'success': False, 'message': f'Unknown event type: {event_type}'}), 400
    payload = data.get('payload') or {}
    if not isinstance(payload, dict):
        return jsonify({'success': False, 'message': 'payload must be an object'}), 400
    services = get_services()
    services.scanner.handle_event(HardwareEvent(type=event_type, payload=payload,
                                                timestamp=services.scheduler.now()))
    return jsonify({'success': True})


@api_bp.route('/directory/reload', methods=['POST'])
@admin_required
def reload_directory():
    services = get_services()
    if not services.reload_directory():
        return jsonify({'success': False, 'message': 'Could not load students'}), 502
    return jsonify({'success': True, 'count': len(services.directory)})
