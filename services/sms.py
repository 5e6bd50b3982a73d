import logging
import threading
import uuid
from typing import Dict, List, Optional

from exceptions import StudentNotFound
from models import SmsDeliveryStatus, SmsModuleStatus, SmsNotification

logger = logging.getLogger(__name__)


class SmsSender:
    """Simulated GSM modem that texts guardians when attendance is recorded.

    A message is ``sent`` as soon as it is handed to the modem. After
    ``delivery_delay`` seconds the carrier confirmation arrives: ``delivered``
    while the module is connected with a ready SIM, ``failed`` otherwise.
    """

    def __init__(self, directory, ledger, notifications, scheduler, delivery_delay: float = 2.0,
                 module_status: Optional[SmsModuleStatus] = None):
        self.directory = directory
        self.ledger = ledger
        self.notifications = notifications
        self.scheduler = scheduler
        self.delivery_delay = delivery_delay
        self.module_status = module_status or SmsModuleStatus()
        self._notifications: List[SmsNotification] = []
        self._confirmations = {}
        self._lock = threading.RLock()

    @property
    def sent_messages(self) -> List[SmsNotification]:
        with self._lock:
            return list(self._notifications)

    def get(self, notification_id: str) -> Optional[SmsNotification]:
        with self._lock:
            for notification in self._notifications:
                if notification.id == notification_id:
                    return notification
        return None

    def send(self, student_id: str, message: str) -> SmsNotification:
        student = self.directory.find_by_student_id(student_id)
        if student is None:
            raise StudentNotFound(student_id)

        sent_at = self.scheduler.now()
        notification = SmsNotification(
            id=f'sms-{uuid.uuid4().hex[:12]}',
            recipient_phone=student.guardian_phone,
            student_id=student_id,
            message=message,
            sent_at=sent_at,
            delivery_status=SmsDeliveryStatus.SENT,
        )
        with self._lock:
            self._notifications.insert(0, notification)
            self.module_status.pending_messages += 1
            self._confirmations[notification.id] = self.scheduler.call_later(
                self.delivery_delay, self._confirm_delivery, notification.id, sent_at.date().isoformat()
            )
        logger.info('SMS %s queued for %s', notification.id, notification.recipient_phone)
        return notification

    def _confirm_delivery(self, notification_id: str, date: str):
        if not self.module_status.is_ready:
            self.fail(notification_id, f'SMS module unavailable (SIM {self.module_status.sim_card_status})')
            return
        with self._lock:
            self._confirmations.pop(notification_id, None)
            notification = self.get(notification_id)
            if notification is None or notification.delivery_status is not SmsDeliveryStatus.SENT:
                return
            delivered_at = self.scheduler.now()
            notification.delivery_status = SmsDeliveryStatus.DELIVERED
            notification.delivered_at = delivered_at
            self._release_pending()
        self.ledger.mark_sms_sent(notification.student_id, date, delivered_at)
        self.notifications.success('SMS Delivered', f'Notification sent to {notification.recipient_phone}')

    def fail(self, notification_id: str, reason: str) -> Optional[SmsNotification]:
        """Move a sent message to ``failed``; delivered messages stay delivered."""
        with self._lock:
            task = self._confirmations.pop(notification_id, None)
            if task is not None:
                task.cancel()
            notification = self.get(notification_id)
            if notification is None or notification.delivery_status is not SmsDeliveryStatus.SENT:
                return notification
            notification.delivery_status = SmsDeliveryStatus.FAILED
            notification.error_message = reason
            self._release_pending()
        logger.warning('SMS %s failed: %s', notification_id, reason)
        self.notifications.error('SMS Failed', f'Could not notify {notification.recipient_phone}: {reason}')
        return notification

    def _release_pending(self):
        self.module_status.pending_messages = max(0, self.module_status.pending_messages - 1)

    def filter(self, status: Optional[str] = None) -> List[SmsNotification]:
        messages = self.sent_messages
        if not status or status == 'all':
            return messages
        wanted = SmsDeliveryStatus(status)
        return [n for n in messages if n.delivery_status is wanted]

    def stats(self) -> Dict[str, int]:
        messages = self.sent_messages
        counts = {'total': len(messages)}
        for status in SmsDeliveryStatus:
            counts[status.value] = sum(1 for n in messages if n.delivery_status is status)
        return counts

    def update_module_status(self, **changes):
        with self._lock:
            for key, value in changes.items():
                if hasattr(self.module_status, key):
                    setattr(self.module_status, key, value)
                else:
                    logger.debug('Ignoring unknown SMS module field %s', key)
