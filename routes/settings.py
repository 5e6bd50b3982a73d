from flask import Blueprint, render_template, redirect, url_for, flash

from decorators import admin_required
from extensions import get_services
from forms import SettingsForm

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')


@settings_bp.route('/', methods=['GET', 'POST'])
@admin_required
def index():
    services = get_services()
    current = services.settings
    form = SettingsForm(data={
        'school_name': current.school_name,
        'late_threshold': current.late_threshold,
        'scanner_location': current.scanner_location,
        'sms_template': current.sms_template,
        'enable_sms_notifications': current.enable_sms_notifications,
    })

    if form.validate_on_submit():
        services.update_settings(
            school_name=form.school_name.data.strip(),
            late_threshold=form.late_threshold.data,
            scanner_location=form.scanner_location.data.strip(),
            sms_template=form.sms_template.data,
            enable_sms_notifications=form.enable_sms_notifications.data,
        )
        flash('Settings saved.', 'success')
        return redirect(url_for('settings.index'))

    return render_template('settings.html', form=form)
