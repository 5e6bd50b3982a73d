from flask import Blueprint, render_template
from flask_login import current_user

from decorators import roles_required
from extensions import get_services
from routes.records import own_student

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


@dashboard_bp.route('/', methods=['GET'])
@roles_required('admin', 'instructor', 'student')
def index():
    services = get_services()
    if current_user.role == 'student':
        student = own_student(current_user, services.directory)
        records = services.ledger.for_student(student.student_id) if student else []
        return render_template('dashboard.html', student=student, records=records[:10],
                               summary=services.ledger.summarize(records))

    return render_template(
        'dashboard.html',
        stats=services.ledger.stats(),
        attendance_rate=services.ledger.attendance_rate(),
        today_records=services.ledger.today_records()[:10],
        recent_scans=list(services.scanner.recent_scans),
        sms_module=services.sms.module_status,
        sms_stats=services.sms.stats(),
    )
