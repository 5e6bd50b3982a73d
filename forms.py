import re

from flask_wtf import FlaskForm
from wtforms import Form, StringField, PasswordField, SubmitField, SelectField, IntegerField, TextAreaField, BooleanField
from wtforms.validators import DataRequired, Length, NumberRange, Regexp, ValidationError

from models import normalize_uid
from services.settings import SMS_PLACEHOLDERS, check_template, template_fields

COURSES = [
    'Computer Science',
    'Information Technology',
    'Information Systems',
    'Computer Engineering',
    'Data Science',
]

SECTIONS = ['A', 'B', 'C', 'D', 'E']

STUDENT_ID_PATTERN = r'^\d{4}-\d{4}$'
EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PH_MOBILE_RE = re.compile(r'^(09\d{9}|639\d{9})$')


def strip_value(value):
    return value.strip() if isinstance(value, str) else value


def format_phone(value):
    """Rewrite a local ``09…`` mobile number to the ``+63`` international form."""
    if not isinstance(value, str):
        return value
    value = re.sub(r'[^\d+]', '', value)
    if value.startswith('09') and len(value) > 2:
        value = '+63' + value[1:]
    return value


def is_valid_phone(value):
    return bool(PH_MOBILE_RE.match(re.sub(r'\D', '', value or '')))


# Login Form
class LoginForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])
    submit = SubmitField('Login')


class ScanForm(FlaskForm):
    rfid = StringField('RFID Card ID', validators=[DataRequired(), Length(max=64)], filters=[strip_value])
    submit = SubmitField('Simulate Scan')


class SettingsForm(FlaskForm):
    school_name = StringField('School Name', validators=[DataRequired(), Length(max=120)])
    late_threshold = StringField('Late Threshold Time', validators=[
        DataRequired(),
        Regexp(r'^([01]\d|2[0-3]):[0-5]\d$', message='Use 24-hour HH:MM')
    ])
    scanner_location = StringField('Scanner Location', validators=[DataRequired(), Length(max=120)])
    sms_template = TextAreaField('SMS Template', validators=[DataRequired(), Length(max=320)])
    enable_sms_notifications = BooleanField('SMS Notifications')
    submit = SubmitField('Save Settings')

    def validate_sms_template(self, sms_template):
        try:
            unknown = template_fields(sms_template.data or '') - set(SMS_PLACEHOLDERS)
        except ValueError:
            raise ValidationError('Placeholders must look like {student_name}')
        if unknown:
            raise ValidationError(f'Unknown placeholder(s): {", ".join(sorted(unknown))}')
        try:
            check_template(sms_template.data or '')
        except ValueError:
            raise ValidationError('Placeholders must be named, e.g. {student_name}')


# Student Registration Form
class StudentRegistrationForm(Form):
    """Field rules for the registration wizard.

    A plain WTForms form so the workflow can validate one step at a time,
    with or without a request.
    """
    student_id = StringField('Student ID', filters=[strip_value], validators=[
        DataRequired(message='Student ID is required'),
        Regexp(STUDENT_ID_PATTERN, message='Format: YYYY-NNNN (e.g., 2024-0001)')
    ])
    full_name = StringField('Full Name', filters=[strip_value], validators=[
        DataRequired(message='Full name is required'),
        Length(min=3, message='Name must be at least 3 characters')
    ])
    rfid_card_id = StringField('RFID Card ID', filters=[normalize_uid], validators=[
        DataRequired(message='RFID Card ID is required')
    ])
    guardian_name = StringField('Guardian Name', filters=[strip_value], validators=[
        DataRequired(message='Guardian name is required')
    ])
    guardian_phone = StringField('Guardian Phone', filters=[format_phone], validators=[
        DataRequired(message='Phone number is required')
    ])
    email = StringField('Email', filters=[strip_value])
    course = SelectField('Course', choices=[('', 'Select course')] + [(c, c) for c in COURSES], validators=[
        DataRequired(message='Please select a course')
    ])
    section = SelectField('Section', choices=[('', 'Select section')] + [(s, s) for s in SECTIONS], validators=[
        DataRequired(message='Please select a section')
    ])
    year_level = IntegerField('Year Level', default=1, validators=[
        NumberRange(min=1, max=4, message='Year level must be between 1 and 4')
    ])

    def __init__(self, *args, directory=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.directory = directory

    def validate_student_id(self, student_id):
        if self.directory is not None and self.directory.has_student_id(student_id.data):
            raise ValidationError('This Student ID is already registered')

    def validate_rfid_card_id(self, rfid_card_id):
        if self.directory is not None and self.directory.has_card(rfid_card_id.data):
            raise ValidationError('This RFID card is already registered')

    def validate_guardian_phone(self, guardian_phone):
        if not is_valid_phone(guardian_phone.data):
            raise ValidationError('Invalid Philippine mobile number')

    def validate_email(self, email):
        if email.data and not EMAIL_RE.match(email.data):
            raise ValidationError('Invalid email format')

    def validate_fields(self, names):
        """Validate only ``names``; returns ``{field: first error}``."""
        errors = {}
        for name in names:
            field = self[name]
            inline = getattr(self.__class__, f'validate_{name}', None)
            if not field.validate(self, [inline] if inline else []):
                errors[name] = field.errors[0]
        return errors

    def field_errors(self):
        return self.validate_fields(list(self._fields))
