from functools import wraps

from flask import jsonify, render_template, request
from flask_login import current_user

from extensions import login_manager
from services.session_store import allowed


def roles_required(*roles):
    """Restrict a view to signed-in users holding one of ``roles``."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            is_api = request.blueprint == 'api'
            if not current_user.is_authenticated:
                if is_api:
                    return jsonify({'success': False, 'message': 'Authentication required.'}), 401
                return login_manager.unauthorized()
            if not allowed(current_user, roles):
                if is_api:
                    return jsonify({'success': False, 'message': 'You do not have permission to access this resource.'}), 403
                return render_template('access_denied.html', required_roles=roles), 403
            return view(*args, **kwargs)
        return wrapped
    return decorator


def admin_required(view):
    return roles_required('admin')(view)
