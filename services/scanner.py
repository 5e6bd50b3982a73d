import datetime
import logging
import threading
from collections import deque
from typing import Callable, List, Optional

from exceptions import ApiError, StudentNotFound
from models import AttendanceStatus, HardwareEvent, ScanEvent, ScannerStatus, Student, normalize_uid

logger = logging.getLogger(__name__)

RECENT_SCANS = 10


def parse_threshold(value) -> datetime.time:
    if isinstance(value, datetime.time):
        return value
    hour, minute = str(value).strip().split(':')[:2]
    return datetime.time(int(hour), int(minute))


def attendance_status_for(scanned_at: datetime.datetime, late_threshold: datetime.time) -> AttendanceStatus:
    """Late once the scan's minute is past the threshold minute; 08:30 itself is on time."""
    if (scanned_at.hour, scanned_at.minute) > (late_threshold.hour, late_threshold.minute):
        return AttendanceStatus.LATE
    return AttendanceStatus.PRESENT


class ScanSimulator:
    """Simulated RFID reader at the scanner location.

    A scan resolves the card against the directory after ``scan_delay``;
    registered cards are checked in (or out) and their guardian is texted,
    unknown cards become the pending scan offered for registration.
    """

    def __init__(self, directory, ledger, sms, notifications, scheduler, settings, api=None,
                 scan_delay=0.5, result_reset_delay=5.0, heartbeat_interval=5.0, firmware_version=None):
        self.directory = directory
        self.ledger = ledger
        self.sms = sms
        self.notifications = notifications
        self.scheduler = scheduler
        self.settings = settings
        self.api = api
        self.scan_delay = scan_delay
        self.result_reset_delay = result_reset_delay
        self.heartbeat_interval = heartbeat_interval

        self.status = ScannerStatus(
            location=settings.scanner_location,
            is_connected=True,
            last_heartbeat=scheduler.now(),
            firmware_version=firmware_version,
        )
        self._scans_in_flight = 0
        self.last_scan: Optional[ScanEvent] = None
        self.pending_scan: Optional[ScanEvent] = None
        self.recent_scans = deque(maxlen=RECENT_SCANS)

        # Transient result shown on the scanner page
        self.scan_result = 'idle'  # 'idle', 'success', 'warning', 'error'
        self.scanned_student: Optional[Student] = None
        self.sms_status = 'idle'  # 'idle', 'sending', 'sent', 'failed'

        self._unregistered_callbacks: List[Callable[[str], None]] = []
        self._reset_task = None
        self._heartbeat_task = None
        self._lock = threading.RLock()

    @property
    def is_scanning(self) -> bool:
        return self._scans_in_flight > 0

    def start(self):
        if self._heartbeat_task is None:
            self._heartbeat_task = self.scheduler.call_every(self.heartbeat_interval, self._heartbeat)

    def close(self):
        with self._lock:
            if self._heartbeat_task is not None:
                self._heartbeat_task.cancel()
                self._heartbeat_task = None
            if self._reset_task is not None:
                self._reset_task.cancel()
                self._reset_task = None

    def _heartbeat(self):
        self.status.is_connected = True
        self.status.last_heartbeat = self.scheduler.now()

    def on_unregistered_card(self, callback: Callable[[str], None]):
        self._unregistered_callbacks.append(callback)
        return callback

    def simulate(self, card_id: str):
        card_id = normalize_uid(card_id)
        if not card_id:
            raise ValueError('RFID card id is required')
        with self._lock:
            self._scans_in_flight += 1
        self.scheduler.call_later(self.scan_delay, self._complete_scan, card_id)

    def _complete_scan(self, card_id: str):
        try:
            self.handle_event(HardwareEvent(type='rfid_scan', payload={'rfidCardId': card_id},
                                            timestamp=self.scheduler.now()))
        finally:
            with self._lock:
                self._scans_in_flight -= 1

    def handle_event(self, event: HardwareEvent):
        if event.type == 'rfid_scan':
            self._handle_scan(normalize_uid(event.payload.get('rfidCardId', '')))
        elif event.type == 'scanner_status':
            with self._lock:
                for key, value in event.payload.items():
                    if hasattr(self.status, key):
                        setattr(self.status, key, value)
        elif event.type == 'sms_status':
            self.sms.update_module_status(**event.payload)
        elif event.type == 'error':
            self.notifications.error(
                'Hardware Error',
                event.payload.get('message') or 'An error occurred with the hardware.',
            )
        else:
            logger.warning('Ignoring unknown hardware event %s', event.type)

    def _handle_scan(self, card_id: str):
        now = self.scheduler.now()
        student = self.directory.lookup(card_id)
        event = ScanEvent(
            rfid_card_id=card_id,
            timestamp=now,
            scanner_location=self.status.location,
            is_registered=student is not None,
            student_id=student.student_id if student else None,
        )
        with self._lock:
            self.last_scan = event
            self.recent_scans.appendleft(event)
        self._report_scan(card_id)

        try:
            if student is None:
                self._handle_unregistered(event)
            else:
                self._handle_registered(event, student)
        finally:
            self._schedule_reset()

    def _handle_unregistered(self, event: ScanEvent):
        with self._lock:
            self.pending_scan = event
            self.scan_result = 'warning'
            self.scanned_student = None
        self.notifications.warning(
            'Unregistered RFID Card',
            f'Card {event.rfid_card_id} is not registered. Please register the student.',
        )
        for callback in list(self._unregistered_callbacks):
            try:
                callback(event.rfid_card_id)
            except Exception:
                logger.exception('Unregistered-card callback failed')

    def _handle_registered(self, event: ScanEvent, student: Student):
        status = attendance_status_for(event.timestamp, parse_threshold(self.settings.late_threshold))
        try:
            record = self.ledger.record(student.student_id, status, at=event.timestamp)
        except StudentNotFound as exc:
            with self._lock:
                self.scan_result = 'error'
                self.scanned_student = None
            self.notifications.error('Attendance Not Recorded', exc.message)
            return

        with self._lock:
            self.scan_result = 'success'
            self.scanned_student = student
        checked_out = record.check_out_time is not None
        self.notifications.success(
            'Attendance Recorded',
            f'{student.full_name} checked {"out" if checked_out else "in"} successfully.',
        )
        if self.settings.enable_sms_notifications:
            self._send_sms(student, record, event.timestamp, checked_out)

    def _send_sms(self, student, record, scanned_at, checked_out):
        with self._lock:
            self.sms_status = 'sending'
        try:
            message = self.settings.render_sms(
                student_name=student.full_name,
                action='out' if checked_out else 'in',
                time=scanned_at.strftime('%I:%M %p'),
                date=scanned_at.strftime('%Y-%m-%d'),
                status='LATE' if record.status is AttendanceStatus.LATE else 'Present',
            )
        except ValueError as exc:
            logger.error('Could not build SMS for %s: %s', student.student_id, exc)
            with self._lock:
                self.sms_status = 'failed'
            self.notifications.error('SMS Not Sent', 'The SMS template could not be filled in. Check the settings page.')
            return

        try:
            self.sms.send(student.student_id, message)
        except StudentNotFound:
            logger.exception('Could not text guardian of %s', student.student_id)
            with self._lock:
                self.sms_status = 'failed'
        else:
            with self._lock:
                self.sms_status = 'sent'

    def _report_scan(self, card_id):
        if self.api is None:
            return
        try:
            self.api.report_scan(card_id)
        except ApiError as exc:
            logger.warning('Could not report scan of %s: %s', card_id, exc.message)

    def _schedule_reset(self):
        with self._lock:
            if self._reset_task is not None:
                self._reset_task.cancel()
            self._reset_task = self.scheduler.call_later(self.result_reset_delay, self._reset_result)

    def _reset_result(self):
        with self._lock:
            self.scan_result = 'idle'
            self.scanned_student = None
            self.sms_status = 'idle'
            self._reset_task = None

    def clear_pending_scan(self, card_id: Optional[str] = None) -> bool:
        """Drop the pending scan; with ``card_id`` only if it is for that card."""
        with self._lock:
            if self.pending_scan is None:
                return False
            if card_id is not None and self.pending_scan.rfid_card_id != normalize_uid(card_id):
                return False
            self.pending_scan = None
            return True

    def set_location(self, location: str):
        with self._lock:
            self.status.location = location
            self.ledger.location = location
