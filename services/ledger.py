import dataclasses
import datetime
import logging
import threading
import uuid
from typing import Dict, List, Optional

from exceptions import StudentNotFound
from models import AttendanceFilter, AttendanceRecord, AttendanceStatus

logger = logging.getLogger(__name__)


class AttendanceLedger:
    """Attendance records for this dashboard, most recent first."""

    def __init__(self, directory, scheduler, location: str = 'Main Entrance'):
        self.directory = directory
        self.scheduler = scheduler
        self.location = location
        self._records: List[AttendanceRecord] = []
        self._lock = threading.RLock()

    @property
    def records(self) -> List[AttendanceRecord]:
        with self._lock:
            return list(self._records)

    def today(self) -> str:
        return self.scheduler.now().date().isoformat()

    def find(self, student_id: str, date: str) -> Optional[AttendanceRecord]:
        with self._lock:
            for record in self._records:
                if record.student_id == student_id and record.date == date:
                    return record
        return None

    def record(self, student_id: str, status: AttendanceStatus,
               at: Optional[datetime.datetime] = None) -> AttendanceRecord:
        """Check a student in, or check them out if they already have today's record."""
        student = self.directory.find_by_student_id(student_id)
        if student is None:
            raise StudentNotFound(student_id)

        now = at or self.scheduler.now()
        date_str = now.date().isoformat()
        with self._lock:
            existing = self.find(student_id, date_str)
            if existing is not None:
                existing.check_out_time = now
                logger.info('Checked out %s at %s', student_id, now.strftime('%H:%M'))
                return existing

            record = AttendanceRecord(
                id=f'att-{date_str}-{uuid.uuid4().hex[:12]}',
                student_id=student_id,
                student=student,
                check_in_time=now,
                date=date_str,
                status=AttendanceStatus(status),
                location=self.location,
                sms_notification_sent=False,
            )
            self._records.insert(0, record)
        logger.info('Checked in %s at %s (%s)', student_id, now.strftime('%H:%M'), record.status.value)
        return record

    def add(self, record: AttendanceRecord):
        """Insert an already-built record, e.g. seeded history."""
        with self._lock:
            if self.find(record.student_id, record.date) is not None:
                raise ValueError(f'{record.student_id} already has a record for {record.date}')
            self._records.append(record)
            self._records.sort(key=lambda r: r.check_in_time, reverse=True)

    def mark_sms_sent(self, student_id: str, date: str, at: datetime.datetime) -> Optional[AttendanceRecord]:
        with self._lock:
            record = self.find(student_id, date)
            if record is not None:
                record.sms_notification_sent = True
                record.sms_delivery_time = at
            return record

    def today_records(self) -> List[AttendanceRecord]:
        today = self.today()
        return [r for r in self.records if r.date == today]

    def stats(self) -> Dict[str, int]:
        todays = self.today_records()
        return {
            'present': sum(1 for r in todays if r.status is AttendanceStatus.PRESENT),
            'late': sum(1 for r in todays if r.status is AttendanceStatus.LATE),
            'absent': sum(1 for r in todays if r.status is AttendanceStatus.ABSENT),
            'total': len(self.directory),
        }

    def attendance_rate(self) -> int:
        stats = self.stats()
        if not stats['total']:
            return 0
        return round((stats['present'] + stats['late']) / stats['total'] * 100)

    def filter(self, criteria: Optional[AttendanceFilter] = None) -> List[AttendanceRecord]:
        records = self.records
        if criteria is not None:
            if criteria.student_id:
                records = [r for r in records if r.student_id == criteria.student_id]
            if criteria.query:
                query = criteria.query.strip().lower()
                records = [
                    r for r in records
                    if query in r.student_id.lower() or query in r.student.full_name.lower()
                ]
            if criteria.date_from:
                records = [r for r in records if r.date >= criteria.date_from]
            if criteria.date_to:
                records = [r for r in records if r.date <= criteria.date_to]
            if criteria.status:
                status = AttendanceStatus(criteria.status)
                records = [r for r in records if r.status is status]
        return sorted(records, key=lambda r: r.check_in_time, reverse=True)

    def for_student(self, student_id: str, criteria: Optional[AttendanceFilter] = None) -> List[AttendanceRecord]:
        criteria = dataclasses.replace(criteria or AttendanceFilter(), student_id=student_id)
        return self.filter(criteria)

    def summarize(self, records: List[AttendanceRecord]) -> Dict[str, int]:
        return {
            'total': len(records),
            'present': sum(1 for r in records if r.status is AttendanceStatus.PRESENT),
            'late': sum(1 for r in records if r.status is AttendanceStatus.LATE),
            'absent': sum(1 for r in records if r.status is AttendanceStatus.ABSENT),
        }

    def __len__(self):
        return len(self._records)
