import pytest

from services.notifications import NotificationBus
from services.scheduler import ManualScheduler


@pytest.fixture
def bus():
    return NotificationBus(ManualScheduler(), default_duration=5.0)


def test_toast_expires_after_its_duration(bus):
    toast = bus.success('Saved', 'All good')
    assert bus.active() == [toast]

    bus.scheduler.advance(4.9)
    assert len(bus) == 1
    bus.scheduler.advance(0.1)
    assert bus.active() == []


def test_zero_duration_toast_stays_until_dismissed(bus):
    toast = bus.info('Sticky', 'Stays', duration=0)
    bus.scheduler.advance(60)
    assert bus.active() == [toast]
    assert bus.dismiss(toast.id) is True
    assert bus.dismiss(toast.id) is False


def test_unknown_type_is_rejected(bus):
    with pytest.raises(ValueError):
        bus.push('fatal', 'Nope', 'Unknown type')


def test_clear_removes_everything(bus):
    bus.error('One', 'first')
    bus.warning('Two', 'second')
    bus.clear()
    bus.scheduler.advance(10)
    assert len(bus) == 0
