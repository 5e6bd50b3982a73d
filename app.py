import atexit
import logging
import os

from flask import Flask, redirect, url_for, session, request
from flask_login import current_user
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from extensions import csrf, get_services, limiter, login_manager
from services import EXTENSION_KEY, build_services
from services.session_store import allowed

NAV_ITEMS = [
    ('dashboard.index', 'Dashboard', ('admin', 'instructor', 'student')),
    ('scan.index', 'RFID Scanner', ('admin', 'instructor')),
    ('students.register', 'Register Student', ('admin',)),
    ('students.index', 'Students', ('admin', 'instructor')),
    ('records.index', 'Attendance Records', ('admin', 'instructor', 'student')),
    ('sms.index', 'SMS Logs', ('admin',)),
    ('settings.index', 'Settings', ('admin',)),
]


def create_app(config_class=Config, services=None):
    base_dir = os.path.dirname(os.path.abspath(__file__))
    app = Flask(__name__, template_folder=os.path.join(base_dir, 'templates'))
    app.config.from_object(config_class)
    app.secret_key = app.config['SECRET_KEY']
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    @app.after_request
    def after_request(response):
        allowed_origins = app.config.get('CORS_ALLOWED_ORIGINS', [])
        request_origin = request.headers.get('Origin')
        if request_origin and request_origin in allowed_origins:
            response.headers['Access-Control-Allow-Origin'] = request_origin
            response.headers['Vary'] = 'Origin'
        response.headers.add('Access-Control-Allow-Headers', 'Content-Type,Authorization')
        response.headers.add('Access-Control-Allow-Methods', 'GET,POST,OPTIONS')
        return response

    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'
    login_manager.login_message_category = 'info'
    csrf.init_app(app)
    limiter.init_app(app)

    if services is None:
        services = build_services(app.config)
    app.extensions[EXTENSION_KEY] = services
    if app.config.get('START_SCHEDULER'):
        atexit.register(services.close)

    from routes.auth import auth_bp
    from routes.dashboard import dashboard_bp
    from routes.scan import scan_bp
    from routes.students import students_bp
    from routes.records import records_bp
    from routes.sms import sms_bp
    from routes.settings import settings_bp
    from routes.api import api_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(scan_bp)
    app.register_blueprint(students_bp)
    app.register_blueprint(records_bp)
    app.register_blueprint(sms_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(api_bp)

    @app.route('/')
    def index():
        if current_user.is_authenticated:
            return redirect(url_for('dashboard.index'))
        return redirect(url_for('auth.login'))

    @app.before_request
    def before_request():
        session.permanent = True

    @app.context_processor
    def inject_layout():
        services = get_services()
        nav = [
            {'endpoint': endpoint, 'label': label}
            for endpoint, label, roles in NAV_ITEMS
            if allowed(current_user, roles)
        ]
        return {
            'nav_items': nav,
            'settings': services.settings,
            'scanner_status': services.scanner.status,
            'toasts': services.notifications.active(),
            'app_version': app.config.get('VERSION'),
        }

    return app


@login_manager.user_loader
def load_user(user_id):
    user = get_services().session_store(session).restore()
    if user is not None and user.get_id() == str(user_id):
        return user
    return None


if __name__ == '__main__':
    app = create_app()
    app.run(debug=app.config['DEBUG'])
