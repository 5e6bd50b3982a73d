import datetime

import pytest

from app import create_app
from config import TestConfig
from services import build_services
from services.demo import DemoBackend
from services.scheduler import ManualScheduler

MONDAY_8AM = datetime.datetime(2024, 9, 2, 8, 0)


def make_config(**overrides):
    config = {key: getattr(TestConfig, key) for key in dir(TestConfig) if key.isupper()}
    config.update(overrides)
    return config


@pytest.fixture
def scheduler():
    return ManualScheduler(start=MONDAY_8AM)


@pytest.fixture
def backend(scheduler):
    return DemoBackend(clock=scheduler.now)


@pytest.fixture
def services(scheduler, backend):
    """Containers over the demo students, without seeded history."""
    services = build_services(make_config(SEED_DEMO_DATA=False), scheduler=scheduler, api=backend)
    yield services
    services.close()


@pytest.fixture
def app(scheduler):
    services = build_services(make_config(), scheduler=scheduler)
    app = create_app(TestConfig, services=services)
    yield app
    services.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(username, password=None):
        return client.post('/auth/login', data={
            'username': username,
            'password': password if password is not None else username,
        }, follow_redirects=False)
    return _login
