import datetime
import enum
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

from flask_login import UserMixin

ROLES = ('admin', 'instructor', 'student')


class AttendanceStatus(enum.Enum):
    PRESENT = 'present'
    LATE = 'late'
    ABSENT = 'absent'
    EXCUSED = 'excused'


class SmsDeliveryStatus(enum.Enum):
    PENDING = 'pending'
    SENT = 'sent'
    DELIVERED = 'delivered'
    FAILED = 'failed'


def normalize_uid(uid):
    return (uid or '').strip().upper().replace(' ', '')


def _payload_value(payload, *keys, default=None):
    if not payload:
        return default
    for key in keys:
        if key in payload and payload[key] not in (None, ''):
            return payload[key]
    return default


def parse_datetime(value):
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if not value:
        return None
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.datetime.fromisoformat(text)
    except ValueError:
        return None


def _isoformat(value):
    return value.isoformat() if value else None


@dataclass(eq=False)
class SessionUser(UserMixin):
    id: str
    username: str
    email: str
    role: str
    full_name: str
    created_at: Optional[datetime.datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'fullName': self.full_name,
            'createdAt': _isoformat(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionUser':
        role = data['role']
        if role not in ROLES:
            raise ValueError(f'Unknown role: {role}')
        return cls(
            id=str(data['id']),
            username=data['username'],
            email=data.get('email', ''),
            role=role,
            full_name=data.get('fullName', data['username']),
            created_at=parse_datetime(data.get('createdAt')),
        )

    def __repr__(self):
        return f'<SessionUser {self.username} ({self.role})>'


@dataclass
class Student:
    student_id: str
    full_name: str
    rfid_card_id: str
    guardian_name: str
    guardian_phone: str
    id: Optional[str] = None
    student_phone: Optional[str] = None
    email: Optional[str] = None
    course: Optional[str] = None
    section: Optional[str] = None
    year_level: int = 1
    registered_at: Optional[datetime.datetime] = None
    registered_by: str = 'admin'
    is_active: bool = True

    def __post_init__(self):
        self.rfid_card_id = normalize_uid(self.rfid_card_id)

    @classmethod
    def from_api(cls, row: Dict[str, Any], defaults: Optional['Student'] = None) -> 'Student':
        """Map a row in the server's field naming onto a Student.

        Fields the server leaves out are taken from ``defaults`` (the record that
        was submitted, when mapping a create response).
        """
        base = asdict(defaults) if defaults else {}
        rfid = _payload_value(row, 'rfid', 'rfid_card_id', 'rfidCardId', default=base.get('rfid_card_id'))
        student_id = _payload_value(row, 'student_id', 'studentId', default=base.get('student_id'))
        if not rfid or not student_id:
            raise ValueError('Student row is missing rfid or student_id')
        server_id = _payload_value(row, 'id', default=base.get('id'))
        year_level = _payload_value(row, 'year_level', 'yearLevel', default=base.get('year_level', 1))
        try:
            year_level = int(year_level)
        except (TypeError, ValueError):
            year_level = 1
        is_active = _payload_value(row, 'is_active', 'isActive', default=base.get('is_active', True))
        return cls(
            id=str(server_id) if server_id is not None else None,
            student_id=str(student_id),
            full_name=_payload_value(row, 'name', 'full_name', 'fullName', default=base.get('full_name', '')),
            rfid_card_id=str(rfid),
            guardian_name=_payload_value(row, 'guardian_name', 'guardianName', default=base.get('guardian_name', '')),
            guardian_phone=_payload_value(row, 'parent_phone', 'guardian_phone', 'parentPhone',
                                          default=base.get('guardian_phone', '')),
            student_phone=_payload_value(row, 'student_phone', 'studentPhone', default=base.get('student_phone')),
            email=_payload_value(row, 'email', default=base.get('email')),
            course=_payload_value(row, 'course', default=base.get('course')),
            section=_payload_value(row, 'section', default=base.get('section')),
            year_level=year_level,
            registered_at=parse_datetime(_payload_value(row, 'created_at', 'registered_at'))
            or base.get('registered_at'),
            registered_by=_payload_value(row, 'registered_by', default=base.get('registered_by', 'admin')),
            is_active=bool(is_active),
        )

    def to_api_payload(self) -> Dict[str, Any]:
        return {
            'rfid': self.rfid_card_id,
            'studentId': self.student_id,
            'name': self.full_name,
            'studentPhone': self.student_phone,
            'parentPhone': self.guardian_phone,
            'guardianName': self.guardian_name,
            'course': self.course,
            'section': self.section,
            'yearLevel': self.year_level,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'studentId': self.student_id,
            'fullName': self.full_name,
            'rfidCardId': self.rfid_card_id,
            'guardianName': self.guardian_name,
            'guardianPhone': self.guardian_phone,
            'studentPhone': self.student_phone,
            'email': self.email,
            'course': self.course,
            'section': self.section,
            'yearLevel': self.year_level,
            'registeredAt': _isoformat(self.registered_at),
            'registeredBy': self.registered_by,
            'isActive': self.is_active,
        }


@dataclass
class AttendanceRecord:
    id: str
    student_id: str
    student: Student
    check_in_time: datetime.datetime
    date: str  # YYYY-MM-DD
    status: AttendanceStatus
    location: str
    check_out_time: Optional[datetime.datetime] = None
    verified_by: Optional[str] = None
    sms_notification_sent: bool = False
    sms_delivery_time: Optional[datetime.datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'studentId': self.student_id,
            'studentName': self.student.full_name,
            'checkInTime': _isoformat(self.check_in_time),
            'checkOutTime': _isoformat(self.check_out_time),
            'date': self.date,
            'status': self.status.value,
            'location': self.location,
            'smsNotificationSent': self.sms_notification_sent,
            'smsDeliveryTime': _isoformat(self.sms_delivery_time),
        }


@dataclass
class SmsNotification:
    id: str
    recipient_phone: str
    student_id: str
    message: str
    sent_at: datetime.datetime
    delivery_status: SmsDeliveryStatus = SmsDeliveryStatus.PENDING
    delivered_at: Optional[datetime.datetime] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'recipientPhone': self.recipient_phone,
            'studentId': self.student_id,
            'message': self.message,
            'sentAt': _isoformat(self.sent_at),
            'deliveryStatus': self.delivery_status.value,
            'deliveredAt': _isoformat(self.delivered_at),
            'errorMessage': self.error_message,
        }


@dataclass
class ScanEvent:
    rfid_card_id: str
    timestamp: datetime.datetime
    scanner_location: str
    is_registered: bool
    student_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rfidCardId': self.rfid_card_id,
            'timestamp': _isoformat(self.timestamp),
            'scannerLocation': self.scanner_location,
            'isRegistered': self.is_registered,
            'studentId': self.student_id,
        }


@dataclass
class ScannerStatus:
    location: str
    is_connected: bool = True
    last_heartbeat: Optional[datetime.datetime] = None
    firmware_version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isConnected': self.is_connected,
            'lastHeartbeat': _isoformat(self.last_heartbeat),
            'location': self.location,
            'firmwareVersion': self.firmware_version,
        }


@dataclass
class SmsModuleStatus:
    is_connected: bool = True
    signal_strength: int = 25  # 0-31, 99 for unknown
    network_operator: Optional[str] = None
    sim_card_status: str = 'ready'  # 'ready', 'not_inserted', 'error'
    pending_messages: int = 0

    @property
    def is_ready(self):
        return self.is_connected and self.sim_card_status == 'ready'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isConnected': self.is_connected,
            'signalStrength': self.signal_strength,
            'networkOperator': self.network_operator,
            'simCardStatus': self.sim_card_status,
            'pendingMessages': self.pending_messages,
        }


@dataclass
class Toast:
    id: str
    type: str  # 'success', 'error', 'warning', 'info'
    title: str
    message: str
    duration: Optional[float] = None
    created_at: Optional[datetime.datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'duration': self.duration,
            'createdAt': _isoformat(self.created_at),
        }


@dataclass
class AttendanceFilter:
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    status: Optional[AttendanceStatus] = None
    query: Optional[str] = None
    student_id: Optional[str] = None


@dataclass
class HardwareEvent:
    type: str  # 'rfid_scan', 'scanner_status', 'sms_status', 'error'
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime.datetime] = None
