from flask import Blueprint, render_template, request

from decorators import admin_required
from extensions import get_services
from models import SmsDeliveryStatus

sms_bp = Blueprint('sms', __name__, url_prefix='/sms-logs')


@sms_bp.route('/', methods=['GET'])
@admin_required
def index():
    services = get_services()
    status = request.args.get('status', 'all')
    if status not in {s.value for s in SmsDeliveryStatus}:
        status = 'all'
    return render_template(
        'sms_logs.html',
        messages=services.sms.filter(status),
        stats=services.sms.stats(),
        module=services.sms.module_status,
        status=status,
        statuses=[s.value for s in SmsDeliveryStatus],
    )
