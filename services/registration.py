import datetime
import enum
import logging
from typing import Any, Dict, Optional

from exceptions import RegistrationFailed
from forms import StudentRegistrationForm, format_phone
from models import Student, normalize_uid

logger = logging.getLogger(__name__)


class RegistrationStep(enum.Enum):
    IDENTITY = 'identity'
    GUARDIAN = 'guardian'
    ACADEMIC = 'academic'
    CONFIRMING = 'confirming'
    SUBMITTING = 'submitting'
    SUCCESS = 'success'
    FAILED = 'failed'


STEP_FIELDS = {
    RegistrationStep.IDENTITY: ('student_id', 'full_name', 'rfid_card_id'),
    RegistrationStep.GUARDIAN: ('guardian_name', 'guardian_phone', 'email'),
    RegistrationStep.ACADEMIC: ('course', 'section', 'year_level'),
}

_NEXT = {
    RegistrationStep.IDENTITY: RegistrationStep.GUARDIAN,
    RegistrationStep.GUARDIAN: RegistrationStep.ACADEMIC,
    RegistrationStep.ACADEMIC: RegistrationStep.CONFIRMING,
}
_PREVIOUS = {after: before for before, after in _NEXT.items()}

INITIAL_DATA = {
    'student_id': '',
    'full_name': '',
    'rfid_card_id': '',
    'guardian_name': '',
    'guardian_phone': '',
    'email': '',
    'course': '',
    'section': '',
    'year_level': 1,
}


class RegistrationWorkflow:
    """Three-step student registration wizard followed by a confirmation.

    Validation problems are kept in ``errors`` as ``{field: message}``; a
    rejected submission returns to the confirmation step with ``error`` set.
    """

    def __init__(self, directory, notifications, scanner=None, prefilled_rfid=None,
                 registered_by='admin', clock=None):
        self.directory = directory
        self.notifications = notifications
        self.scanner = scanner
        self.registered_by = registered_by
        self.clock = clock or datetime.datetime.now
        self.data: Dict[str, Any] = dict(INITIAL_DATA)
        if prefilled_rfid:
            self.data['rfid_card_id'] = normalize_uid(prefilled_rfid)
        self.state = RegistrationStep.IDENTITY
        self.errors: Dict[str, str] = {}
        self.error: Optional[str] = None
        self.outcome: Optional[RegistrationStep] = None
        self.is_submitting = False
        self.student: Optional[Student] = None

    @property
    def step_number(self) -> Optional[int]:
        steps = list(STEP_FIELDS)
        return steps.index(self.state) + 1 if self.state in STEP_FIELDS else None

    def update(self, values: Dict[str, Any]):
        for key, value in values.items():
            if key not in INITIAL_DATA:
                continue
            if key == 'guardian_phone':
                value = format_phone(value)
            elif key == 'rfid_card_id':
                value = normalize_uid(value)
            elif key == 'year_level':
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    value = None
            elif isinstance(value, str) and key != 'full_name':
                value = value.strip()
            self.data[key] = value
            self.errors.pop(key, None)

    def _form(self) -> StudentRegistrationForm:
        return StudentRegistrationForm(data=self.data, directory=self.directory)

    def validate(self, fields=None) -> Dict[str, str]:
        form = self._form()
        return form.validate_fields(fields) if fields is not None else form.field_errors()

    def next_step(self) -> bool:
        if self.state not in STEP_FIELDS:
            return False
        fields = STEP_FIELDS[self.state]
        errors = self.validate(fields)
        for name in fields:
            self.errors.pop(name, None)
        if errors:
            self.errors.update(errors)
            return False
        self.state = _NEXT[self.state]
        return True

    def back(self) -> bool:
        if self.state not in _PREVIOUS:
            return False
        self.state = _PREVIOUS[self.state]
        self.error = None
        return True

    def build_student(self) -> Student:
        cleaned = self._form().data
        return Student(
            student_id=cleaned['student_id'],
            full_name=cleaned['full_name'],
            rfid_card_id=cleaned['rfid_card_id'],
            guardian_name=cleaned['guardian_name'],
            guardian_phone=cleaned['guardian_phone'],
            email=cleaned['email'] or None,
            course=cleaned['course'],
            section=cleaned['section'],
            year_level=cleaned['year_level'] or 1,
            registered_at=self.clock(),
            registered_by=self.registered_by,
            is_active=True,
        )

    def confirm(self) -> Optional[Student]:
        """Submit the registration; returns the stored student or ``None`` on failure."""
        if self.state is not RegistrationStep.CONFIRMING:
            raise ValueError(f'Cannot confirm registration from step {self.state.value}')

        self.state = RegistrationStep.SUBMITTING
        self.is_submitting = True
        self.error = None
        try:
            errors = self.validate()
            if errors:
                self.errors = errors
                raise RegistrationFailed('Please correct the highlighted fields')
            student = self.directory.register(self.build_student())
        except RegistrationFailed as exc:
            logger.warning('Registration of %s rejected: %s', self.data.get('student_id'), exc.reason)
            self.outcome = RegistrationStep.FAILED
            self.state = RegistrationStep.CONFIRMING
            self.error = exc.reason
            self.notifications.error('Registration Failed', exc.reason)
            return None
        finally:
            self.is_submitting = False

        self.outcome = RegistrationStep.SUCCESS
        self.state = RegistrationStep.SUCCESS
        self.student = student
        if self.scanner is not None:
            self.scanner.clear_pending_scan(student.rfid_card_id)
        self.notifications.success('Student Registered', f'{student.full_name} has been successfully registered.')
        return student

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'data': dict(self.data),
            'errors': dict(self.errors),
            'error': self.error,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], directory, notifications, scanner=None,
                  registered_by='admin', clock=None) -> 'RegistrationWorkflow':
        workflow = cls(directory, notifications, scanner=scanner, registered_by=registered_by, clock=clock)
        try:
            state = RegistrationStep(payload.get('state', RegistrationStep.IDENTITY.value))
        except ValueError:
            state = RegistrationStep.IDENTITY
        if state in (RegistrationStep.SUBMITTING, RegistrationStep.FAILED, RegistrationStep.SUCCESS):
            state = RegistrationStep.IDENTITY
        workflow.state = state
        workflow.data.update({k: v for k, v in (payload.get('data') or {}).items() if k in INITIAL_DATA})
        workflow.errors = dict(payload.get('errors') or {})
        workflow.error = payload.get('error')
        return workflow
