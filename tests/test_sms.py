import pytest

from exceptions import StudentNotFound
from models import AttendanceStatus, SmsDeliveryStatus


def test_send_is_delivered_after_delay(services):
    sms = services.sms
    services.ledger.record('2024-0001', AttendanceStatus.PRESENT)

    notification = sms.send('2024-0001', 'Checked in')

    assert notification.delivery_status is SmsDeliveryStatus.SENT
    assert notification.recipient_phone == '+639171234567'
    assert sms.module_status.pending_messages == 1

    services.scheduler.advance(2)

    assert notification.delivery_status is SmsDeliveryStatus.DELIVERED
    assert notification.delivered_at == services.scheduler.now()
    assert sms.module_status.pending_messages == 0
    record = services.ledger.find('2024-0001', '2024-09-02')
    assert record.sms_notification_sent is True
    assert any(t.title == 'SMS Delivered' for t in services.notifications.active())


def test_send_fails_when_sim_not_ready(services):
    sms = services.sms
    notification = sms.send('2024-0002', 'Checked in')
    sms.update_module_status(sim_card_status='not_inserted')

    services.scheduler.advance(2)

    assert notification.delivery_status is SmsDeliveryStatus.FAILED
    assert 'not_inserted' in notification.error_message
    assert any(t.title == 'SMS Failed' for t in services.notifications.active())


def test_send_to_unknown_student(services):
    with pytest.raises(StudentNotFound):
        services.sms.send('2099-0001', 'hello')
    assert services.sms.sent_messages == []


def test_fail_only_moves_sent_messages(services):
    sms = services.sms
    notification = sms.send('2024-0001', 'hello')
    sms.fail(notification.id, 'carrier rejected')
    assert notification.delivery_status is SmsDeliveryStatus.FAILED

    services.scheduler.advance(5)
    assert notification.delivery_status is SmsDeliveryStatus.FAILED

    delivered = sms.send('2024-0002', 'hello')
    services.scheduler.advance(2)
    sms.fail(delivered.id, 'too late')
    assert delivered.delivery_status is SmsDeliveryStatus.DELIVERED


def test_stats_and_filter(services):
    sms = services.sms
    first = sms.send('2024-0001', 'one')
    services.scheduler.advance(2)
    sms.send('2024-0002', 'two')

    assert sms.stats() == {'total': 2, 'pending': 0, 'sent': 1, 'delivered': 1, 'failed': 0}
    assert sms.filter('delivered') == [first]
    assert len(sms.filter('all')) == 2
