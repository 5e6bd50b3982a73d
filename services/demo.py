"""In-process stand-in for the remote attendance API, used when no server is configured."""
import copy
import datetime
import itertools
import threading
from typing import Any, Dict, List, Optional

from exceptions import ApiError
from models import AttendanceRecord, AttendanceStatus, normalize_uid

DEMO_STUDENT_ROWS: List[Dict[str, Any]] = [
    {
        'id': '1',
        'student_id': '2024-0001',
        'name': 'Maria Santos',
        'rfid': 'RFID-001-ABC',
        'guardian_name': 'Juan Santos',
        'parent_phone': '+639171234567',
        'course': 'Computer Science',
        'section': 'A',
        'year_level': 2,
        'created_at': '2024-08-15T00:00:00',
        'is_active': True,
    },
    {
        'id': '2',
        'student_id': '2024-0002',
        'name': 'Carlos Reyes',
        'rfid': 'RFID-002-DEF',
        'guardian_name': 'Ana Reyes',
        'parent_phone': '+639189876543',
        'course': 'Information Technology',
        'section': 'B',
        'year_level': 1,
        'created_at': '2024-08-16T00:00:00',
        'is_active': True,
    },
    {
        'id': '3',
        'student_id': '2024-0003',
        'name': 'Elena Cruz',
        'rfid': 'RFID-003-GHI',
        'guardian_name': 'Roberto Cruz',
        'parent_phone': '+639195551234',
        'course': 'Computer Science',
        'section': 'A',
        'year_level': 3,
        'created_at': '2024-08-17T00:00:00',
        'is_active': True,
    },
]

_HISTORY_STATUSES = [
    AttendanceStatus.PRESENT,
    AttendanceStatus.PRESENT,
    AttendanceStatus.LATE,
    AttendanceStatus.PRESENT,
    AttendanceStatus.ABSENT,
]


class DemoBackend:
    """Implements the same calls as ``AttendanceApiClient`` against memory."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, clock=None):
        self._rows = [copy.deepcopy(row) for row in (rows if rows is not None else DEMO_STUDENT_ROWS)]
        self._ids = itertools.count(len(self._rows) + 1)
        self._clock = clock or datetime.datetime.now
        self._lock = threading.Lock()
        self.scans: List[str] = []

    def fetch_students(self) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._rows)

    def create_student(self, body: Dict[str, Any]) -> Dict[str, Any]:
        rfid = normalize_uid(body.get('rfid'))
        student_id = (body.get('studentId') or '').strip()
        if not rfid or not student_id or not body.get('name'):
            raise ApiError('rfid, studentId and name are required', status_code=400)
        with self._lock:
            for row in self._rows:
                if row['rfid'] == rfid:
                    raise ApiError('RFID card already registered', status_code=409)
                if row['student_id'] == student_id:
                    raise ApiError('Student ID already exists', status_code=409)
            row = {
                'id': str(next(self._ids)),
                'student_id': student_id,
                'name': body.get('name'),
                'rfid': rfid,
                'guardian_name': body.get('guardianName'),
                'parent_phone': body.get('parentPhone'),
                'student_phone': body.get('studentPhone'),
                'course': body.get('course'),
                'section': body.get('section'),
                'year_level': body.get('yearLevel') or 1,
                'created_at': self._clock().isoformat(),
                'is_active': True,
            }
            self._rows.append(row)
            return copy.deepcopy(row)

    def report_scan(self, rfid: str) -> Dict[str, Any]:
        rfid = normalize_uid(rfid)
        with self._lock:
            self.scans.append(rfid)
            for row in self._rows:
                if row['rfid'] == rfid:
                    return {'status': 'registered', 'student_id': row['student_id']}
        return {'status': 'unregistered', 'rfid': rfid}


def seed_history(ledger, directory, today: datetime.date, days: int = 7) -> int:
    """Fill the ledger with a week of sample check-ins for the first two demo students."""
    added = 0
    for offset in range(days):
        day = today - datetime.timedelta(days=offset)
        date_str = day.isoformat()
        samples = [
            ('2024-0001', datetime.time(8, 0), datetime.time(16, 0), _HISTORY_STATUSES[offset % 5]),
            ('2024-0002', datetime.time(8, 15), datetime.time(16, 30),
             AttendanceStatus.PRESENT if offset == 0 else _HISTORY_STATUSES[(offset + 1) % 5]),
        ]
        for student_id, check_in, check_out, status in samples:
            student = directory.find_by_student_id(student_id)
            if student is None or ledger.find(student_id, date_str) is not None:
                continue
            check_in_at = datetime.datetime.combine(day, check_in)
            ledger.add(AttendanceRecord(
                id=f'att-{date_str}-{student.id}',
                student_id=student_id,
                student=student,
                check_in_time=check_in_at,
                check_out_time=datetime.datetime.combine(day, check_out),
                date=date_str,
                status=status,
                location=ledger.location,
                sms_notification_sent=True,
                sms_delivery_time=check_in_at + datetime.timedelta(minutes=1),
            ))
            added += 1
    return added
