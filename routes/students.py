from flask import Blueprint, render_template, redirect, url_for, request, session
from flask_login import current_user

from decorators import admin_required, roles_required
from extensions import get_services
from forms import COURSES, SECTIONS
from services.registration import STEP_FIELDS, RegistrationStep

students_bp = Blueprint('students', __name__, url_prefix='/students')

SESSION_KEY = 'registration'


@students_bp.route('/', methods=['GET'])
@roles_required('admin', 'instructor')
def index():
    query = (request.args.get('q') or '').strip()
    students = get_services().directory.search(query or None)
    return render_template('students.html', students=students, query=query)


def _load_workflow(services):
    payload = session.get(SESSION_KEY)
    if payload:
        return services.registration(payload, registered_by=current_user.username)
    prefill = request.args.get('rfid')
    if not prefill and services.scanner.pending_scan is not None:
        prefill = services.scanner.pending_scan.rfid_card_id
    return services.registration(prefilled_rfid=prefill, registered_by=current_user.username)


def _render(workflow):
    return render_template(
        'register.html',
        workflow=workflow,
        steps=RegistrationStep,
        courses=COURSES,
        sections=SECTIONS,
    )


@students_bp.route('/register', methods=['GET'])
@admin_required
def register():
    if request.args.get('reset'):
        session.pop(SESSION_KEY, None)
    workflow = _load_workflow(get_services())
    session[SESSION_KEY] = workflow.to_dict()
    return _render(workflow)


@students_bp.route('/register', methods=['POST'])
@admin_required
def register_step():
    services = get_services()
    workflow = _load_workflow(services)
    action = request.form.get('action', 'next')

    if action == 'reset':
        session.pop(SESSION_KEY, None)
        return redirect(url_for('students.register'))

    if workflow.state in STEP_FIELDS:
        workflow.update({name: request.form.get(name, '') for name in STEP_FIELDS[workflow.state]})

    if action == 'back':
        workflow.back()
    elif action == 'confirm' and workflow.state is RegistrationStep.CONFIRMING:
        student = workflow.confirm()
        if student is not None:
            session.pop(SESSION_KEY, None)
            return _render(workflow)
    else:
        workflow.next_step()

    session[SESSION_KEY] = workflow.to_dict()
    return _render(workflow)
