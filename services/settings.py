import string
import threading
from dataclasses import dataclass, field

SMS_PLACEHOLDERS = ('student_name', 'action', 'time', 'date', 'status')
SAMPLE_SMS_VALUES = {
    'student_name': 'Maria Santos',
    'action': 'in',
    'time': '08:15 AM',
    'date': '2024-09-02',
    'status': 'Present',
}


def template_fields(template):
    return {name for _, name, _, _ in string.Formatter().parse(template) if name}


def fill_template(template, **values) -> str:
    """Fill an SMS template; any malformed placeholder is reported as ``ValueError``."""
    try:
        return template.format(**values)
    except (KeyError, IndexError, AttributeError, TypeError) as exc:
        raise ValueError(f'Cannot render SMS template: {exc}') from exc


def check_template(template):
    fill_template(template, **SAMPLE_SMS_VALUES)


@dataclass
class DashboardSettings:
    school_name: str = 'Demo School'
    late_threshold: str = '08:30'
    scanner_location: str = 'Main Entrance'
    sms_template: str = '[AttendTrack] {student_name} checked {action} at {time} on {date}. Status: {status}'
    enable_sms_notifications: bool = True
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @classmethod
    def from_config(cls, config):
        return cls(
            school_name=config.get('SCHOOL_NAME', cls.school_name),
            late_threshold=config.get('LATE_THRESHOLD', cls.late_threshold),
            scanner_location=config.get('SCANNER_LOCATION', cls.scanner_location),
            sms_template=config.get('SMS_TEMPLATE', cls.sms_template),
            enable_sms_notifications=config.get('ENABLE_SMS_NOTIFICATIONS', True),
        )

    def render_sms(self, **values) -> str:
        return fill_template(self.sms_template, **values)

    def update(self, **changes):
        with self._lock:
            for key, value in changes.items():
                if key.startswith('_') or not hasattr(self, key):
                    raise AttributeError(f'Unknown setting: {key}')
                setattr(self, key, value)

    def to_dict(self):
        return {
            'schoolName': self.school_name,
            'lateThreshold': self.late_threshold,
            'scannerLocation': self.scanner_location,
            'smsTemplate': self.sms_template,
            'enableSmsNotifications': self.enable_sms_notifications,
        }
