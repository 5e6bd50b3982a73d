import pytest

from forms import format_phone, is_valid_phone
from services.settings import DashboardSettings, check_template, template_fields


@pytest.mark.parametrize('raw,expected', [
    ('0917 123 4567', '+639171234567'),
    ('0917-123-4567', '+639171234567'),
    ('+639171234567', '+639171234567'),
    ('123456', '123456'),
    ('0', '0'),
])
def test_format_phone(raw, expected):
    assert format_phone(raw) == expected


@pytest.mark.parametrize('value,valid', [
    ('+639171234567', True),
    ('09171234567', True),
    ('639171234567', True),
    ('123456', False),
    ('+63917123456', False),
    ('', False),
])
def test_is_valid_phone(value, valid):
    assert is_valid_phone(value) is valid


def test_template_fields():
    assert template_fields('{student_name} at {time}') == {'student_name', 'time'}


def test_settings_render_and_update():
    settings = DashboardSettings()
    text = settings.render_sms(student_name='Maria Santos', action='in', time='08:15 AM',
                               date='2024-09-02', status='Present')
    assert text == '[AttendTrack] Maria Santos checked in at 08:15 AM on 2024-09-02. Status: Present'

    settings.update(late_threshold='09:00')
    assert settings.late_threshold == '09:00'
    with pytest.raises(AttributeError):
        settings.update(volume=11)


def test_settings_from_config():
    settings = DashboardSettings.from_config({'SCHOOL_NAME': 'Rizal High', 'ENABLE_SMS_NOTIFICATIONS': False})
    assert settings.school_name == 'Rizal High'
    assert settings.late_threshold == '08:30'
    assert settings.enable_sms_notifications is False


@pytest.mark.parametrize('template', [
    'Hi {} {student_name}',
    'Hi {student_name:d}',
    'Hi {student_name!x}',
    'Hi {student_name',
])
def test_check_template_rejects_unrenderable_templates(template):
    with pytest.raises(ValueError):
        check_template(template)


def test_check_template_accepts_named_placeholders():
    check_template('{student_name} checked {action} at {time}, {{literal}}')
