import datetime

from flask import Blueprint, Response, render_template, request, send_file
from flask_login import current_user

from decorators import admin_required, roles_required
from extensions import get_services
from models import AttendanceFilter, AttendanceStatus
from utils.export import records_to_csv, records_to_xlsx

records_bp = Blueprint('records', __name__, url_prefix='/records')

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def own_student(user, directory):
    """The directory entry for a signed-in student, matched by email, then by name."""
    email = (user.email or '').strip().lower()
    name = (user.full_name or '').strip().lower()
    by_name = None
    for student in directory:
        if email and (student.email or '').strip().lower() == email:
            return student
        if by_name is None and student.full_name.strip().lower() == name:
            by_name = student
    return by_name


def _date_arg(name):
    value = (request.args.get(name) or '').strip()
    try:
        return datetime.date.fromisoformat(value).isoformat() if value else None
    except ValueError:
        return None


def filter_from_request() -> AttendanceFilter:
    status = (request.args.get('status') or '').strip().lower()
    return AttendanceFilter(
        date_from=_date_arg('date_from'),
        date_to=_date_arg('date_to'),
        status=AttendanceStatus(status) if status in {s.value for s in AttendanceStatus} else None,
        query=(request.args.get('q') or '').strip() or None,
    )


def visible_records(criteria):
    services = get_services()
    if current_user.role == 'student':
        student = own_student(current_user, services.directory)
        if student is None:
            return []
        return services.ledger.for_student(student.student_id, criteria)
    return services.ledger.filter(criteria)


@records_bp.route('/', methods=['GET'])
@roles_required('admin', 'instructor', 'student')
def index():
    criteria = filter_from_request()
    records = visible_records(criteria)
    return render_template(
        'records.html',
        records=records,
        summary=get_services().ledger.summarize(records),
        criteria=criteria,
        statuses=[s.value for s in AttendanceStatus],
    )


def _export_name(extension):
    stamp = get_services().scheduler.now().strftime('%Y%m%d_%H%M%S')
    return f'attendance_export_{stamp}.{extension}'


@records_bp.route('/export.csv', methods=['GET'])
@admin_required
def export_csv():
    records = visible_records(filter_from_request())
    return Response(
        records_to_csv(records),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={_export_name("csv")}'},
    )


@records_bp.route('/export.xlsx', methods=['GET'])
@admin_required
def export_xlsx():
    records = visible_records(filter_from_request())
    return send_file(records_to_xlsx(records), mimetype=XLSX_MIMETYPE, as_attachment=True,
                     download_name=_export_name('xlsx'))
