import datetime
import json
import logging
from typing import Iterable, List, MutableMapping, Optional

from models import SessionUser

logger = logging.getLogger(__name__)

SESSION_KEY = 'attendance_user'

DEMO_USERS: List[SessionUser] = [
    SessionUser(id='1', username='admin', email='admin@school.edu', role='admin',
                full_name='System Administrator', created_at=datetime.datetime(2024, 1, 1)),
    SessionUser(id='2', username='instructor', email='instructor@school.edu', role='instructor',
                full_name='John Smith', created_at=datetime.datetime(2024, 1, 15)),
    SessionUser(id='3', username='student', email='student@school.edu', role='student',
                full_name='Jane Doe', created_at=datetime.datetime(2024, 2, 1)),
]


def allowed(user, required_roles: Iterable[str]) -> bool:
    """Single authorization check used by every page and API endpoint."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    return getattr(user, 'role', None) in set(required_roles)


class SessionStore:
    """The signed-in user, persisted as one JSON value in a key-value store.

    ``storage`` is the Flask session in the web app and a plain dict in tests.
    """

    def __init__(self, storage: MutableMapping, users: Optional[List[SessionUser]] = None):
        self.storage = storage
        self.users = users if users is not None else DEMO_USERS

    def find_user(self, username: str) -> Optional[SessionUser]:
        wanted = (username or '').strip().lower()
        for user in self.users:
            if user.username.lower() == wanted:
                return user
        return None

    def login(self, username: str, password: str) -> Optional[SessionUser]:
        user = self.find_user(username)
        # Demo accounts use the username as password
        if user is None or password != user.username:
            logger.info('Rejected login for %r', username)
            return None
        self.storage[SESSION_KEY] = json.dumps(user.to_dict())
        logger.info('User %s signed in', user.username)
        return user

    def logout(self):
        self.storage.pop(SESSION_KEY, None)

    def restore(self) -> Optional[SessionUser]:
        raw = self.storage.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return SessionUser.from_dict(json.loads(raw))
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning('Discarding unreadable session value: %s', exc)
            self.storage.pop(SESSION_KEY, None)
            return None

    @property
    def current_user(self) -> Optional[SessionUser]:
        return self.restore()

    @property
    def is_authenticated(self) -> bool:
        return self.restore() is not None

    def has_role(self, roles: Iterable[str]) -> bool:
        return allowed(self.restore(), roles)
