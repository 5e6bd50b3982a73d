import pytest

from services.registration import RegistrationStep

IDENTITY = {'student_id': '2024-0100', 'full_name': 'Ana Lim', 'rfid_card_id': 'rfid-100-xyz'}
GUARDIAN = {'guardian_name': 'Rosa Lim', 'guardian_phone': '0917 123 4567', 'email': ''}
ACADEMIC = {'course': 'Data Science', 'section': 'C', 'year_level': '2'}


@pytest.fixture
def workflow(services):
    return services.registration()


def fill_to_confirmation(workflow):
    for values in (IDENTITY, GUARDIAN, ACADEMIC):
        workflow.update(values)
        assert workflow.next_step(), workflow.errors
    assert workflow.state is RegistrationStep.CONFIRMING


def test_empty_identity_step_reports_every_field(workflow):
    assert workflow.next_step() is False
    assert workflow.state is RegistrationStep.IDENTITY
    assert workflow.errors == {
        'student_id': 'Student ID is required',
        'full_name': 'Full name is required',
        'rfid_card_id': 'RFID Card ID is required',
    }


def test_identity_rules(workflow):
    workflow.update({'student_id': '24-1', 'full_name': 'Al', 'rfid_card_id': 'RFID-001-ABC'})
    workflow.next_step()
    assert workflow.errors == {
        'student_id': 'Format: YYYY-NNNN (e.g., 2024-0001)',
        'full_name': 'Name must be at least 3 characters',
        'rfid_card_id': 'This RFID card is already registered',
    }


def test_duplicate_student_id_is_rejected(workflow):
    workflow.update(dict(IDENTITY, student_id='2024-0001'))
    assert workflow.next_step() is False
    assert workflow.errors == {'student_id': 'This Student ID is already registered'}


def test_editing_a_field_clears_its_error(workflow):
    workflow.next_step()
    workflow.update({'student_id': '2024-0100'})
    assert 'student_id' not in workflow.errors
    assert 'full_name' in workflow.errors


def test_local_phone_is_rewritten_to_international(workflow):
    workflow.update({'guardian_phone': '0917 123 4567'})
    assert workflow.data['guardian_phone'] == '+639171234567'


def test_guardian_step_rules(workflow):
    workflow.update(IDENTITY)
    workflow.next_step()
    workflow.update({'guardian_name': 'Rosa Lim', 'guardian_phone': '123456', 'email': 'not-an-email'})
    assert workflow.next_step() is False
    assert workflow.errors == {
        'guardian_phone': 'Invalid Philippine mobile number',
        'email': 'Invalid email format',
    }

    workflow.update({'guardian_phone': '+639171234567', 'email': 'rosa@example.com'})
    assert workflow.next_step() is True
    assert workflow.state is RegistrationStep.ACADEMIC


def test_academic_step_requires_choices(workflow):
    workflow.update(IDENTITY)
    workflow.next_step()
    workflow.update(GUARDIAN)
    workflow.next_step()
    workflow.update({'course': '', 'section': '', 'year_level': '7'})
    workflow.next_step()
    assert workflow.errors == {
        'course': 'Please select a course',
        'section': 'Please select a section',
        'year_level': 'Year level must be between 1 and 4',
    }


def test_back_walks_to_previous_step(workflow):
    fill_to_confirmation(workflow)
    assert workflow.back() is True
    assert workflow.state is RegistrationStep.ACADEMIC
    workflow.back()
    workflow.back()
    assert workflow.state is RegistrationStep.IDENTITY
    assert workflow.back() is False
    assert workflow.data['full_name'] == 'Ana Lim'


def test_confirm_registers_student(services, workflow):
    fill_to_confirmation(workflow)

    student = workflow.confirm()

    assert workflow.state is RegistrationStep.SUCCESS
    assert workflow.is_submitting is False
    assert student.rfid_card_id == 'RFID-100-XYZ'
    assert student.guardian_phone == '+639171234567'
    assert student.year_level == 2
    assert student.email is None
    assert student.registered_at == services.scheduler.now()
    assert services.directory.lookup('RFID-100-XYZ') is student
    assert [t.title for t in services.notifications.active()] == ['Student Registered']


def test_confirm_clears_matching_pending_scan(services):
    services.scanner.simulate('RFID-100-XYZ')
    services.scheduler.advance(0.5)
    workflow = services.registration(prefilled_rfid=services.scanner.pending_scan.rfid_card_id)
    assert workflow.data['rfid_card_id'] == 'RFID-100-XYZ'

    fill_to_confirmation(workflow)
    workflow.confirm()

    assert services.scanner.pending_scan is None


def test_confirm_revalidates_before_submitting(services, workflow):
    fill_to_confirmation(workflow)
    services.api.create_student({'rfid': 'OTHER-CARD', 'studentId': '2024-0100', 'name': 'Someone'})
    services.reload_directory()

    assert workflow.confirm() is None
    assert workflow.state is RegistrationStep.CONFIRMING
    assert workflow.errors == {'student_id': 'This Student ID is already registered'}
    assert workflow.error == 'Please correct the highlighted fields'


def test_server_rejection_returns_to_confirmation(services, workflow):
    fill_to_confirmation(workflow)
    services.api.create_student({'rfid': 'RFID-100-XYZ', 'studentId': '2024-0555', 'name': 'Elsewhere'})

    assert workflow.confirm() is None

    assert workflow.state is RegistrationStep.CONFIRMING
    assert workflow.outcome is RegistrationStep.FAILED
    assert workflow.error == 'RFID card already registered'
    assert workflow.is_submitting is False
    assert workflow.data['student_id'] == '2024-0100'
    errors = [t for t in services.notifications.active() if t.type == 'error']
    assert errors[0].title == 'Registration Failed'


def test_confirm_outside_confirmation_step(workflow):
    with pytest.raises(ValueError):
        workflow.confirm()


def test_round_trips_through_session_payload(services, workflow):
    workflow.update(IDENTITY)
    workflow.next_step()

    restored = services.registration(workflow.to_dict())

    assert restored.state is RegistrationStep.GUARDIAN
    assert restored.data['rfid_card_id'] == 'RFID-100-XYZ'
