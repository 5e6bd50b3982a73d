from flask import Blueprint, flash, redirect, render_template, url_for

from decorators import roles_required
from extensions import get_services
from forms import ScanForm

scan_bp = Blueprint('scan', __name__, url_prefix='/scan')


@scan_bp.route('/', methods=['GET'])
@roles_required('admin', 'instructor')
def index():
    services = get_services()
    return render_template(
        'scan.html',
        form=ScanForm(),
        scanner=services.scanner,
        students=services.directory.all(),
        sms_module=services.sms.module_status,
    )


@scan_bp.route('/simulate', methods=['POST'])
@roles_required('admin', 'instructor')
def simulate():
    form = ScanForm()
    if form.validate_on_submit():
        try:
            get_services().scanner.simulate(form.rfid.data)
        except ValueError as exc:
            flash(str(exc), 'danger')
    else:
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
    return redirect(url_for('scan.index'))


@scan_bp.route('/clear-pending', methods=['POST'])
@roles_required('admin', 'instructor')
def clear_pending():
    if get_services().scanner.clear_pending_scan():
        flash('Pending scan dismissed.', 'info')
    return redirect(url_for('scan.index'))
