from flask import Blueprint, render_template, redirect, url_for, flash, request, session, jsonify
from flask_login import login_user, logout_user, current_user, login_required

from extensions import get_services
from forms import LoginForm

# Create the blueprint for authentication routes
auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _safe_next(target):
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard.index'))

    services = get_services()
    form = LoginForm()

    if form.validate_on_submit():
        user = services.session_store(session).login(form.username.data, form.password.data)
        if user:
            login_user(user)
            flash(f'Welcome back, {user.full_name}!', 'success')
            return redirect(_safe_next(request.args.get('next')) or url_for('dashboard.index'))
        flash('Invalid username or password', 'danger')

    return render_template('login.html', form=form, demo_users=services.users)


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    get_services().session_store(session).logout()
    session.pop('registration', None)
    logout_user()
    flash('You have been logged out.', 'info')
    return redirect(url_for('auth.login'))


@auth_bp.route('/check-auth', methods=['GET'])
@login_required
def check_auth():
    """Report the signed-in user; used by the page script to detect expired sessions."""
    return jsonify({'authenticated': True, 'user': current_user.to_dict()})
