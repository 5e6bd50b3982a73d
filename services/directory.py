import logging
import threading
from typing import Dict, Iterator, List, Optional

from exceptions import ApiError, DirectoryUnavailable, RegistrationFailed
from models import Student, normalize_uid

logger = logging.getLogger(__name__)


class Directory:
    """Registered students keyed by RFID card id.

    A secondary index maps student id to card id so lookups by student never
    scan the whole mapping.
    """

    def __init__(self, api):
        self.api = api
        self._by_card: Dict[str, Student] = {}
        self._card_by_student_id: Dict[str, str] = {}
        self._lock = threading.RLock()

    def lookup(self, card_id: str) -> Optional[Student]:
        return self._by_card.get(normalize_uid(card_id))

    def find_by_student_id(self, student_id: str) -> Optional[Student]:
        with self._lock:
            card_id = self._card_by_student_id.get((student_id or '').strip())
            return self._by_card.get(card_id) if card_id else None

    def has_card(self, card_id: str) -> bool:
        return normalize_uid(card_id) in self._by_card

    def has_student_id(self, student_id: str) -> bool:
        return (student_id or '').strip() in self._card_by_student_id

    def load_all(self) -> int:
        """Replace the cache with the server's full student list."""
        try:
            rows = self.api.fetch_students()
        except ApiError as exc:
            raise DirectoryUnavailable(f'Could not load students: {exc.message}') from exc

        by_card = {}
        card_by_student_id = {}
        for row in rows:
            try:
                student = Student.from_api(row)
            except (TypeError, ValueError) as exc:
                logger.warning('Skipping malformed student row %r: %s', row, exc)
                continue
            if student.rfid_card_id in by_card or student.student_id in card_by_student_id:
                logger.warning('Skipping duplicate student row for %s / %s',
                               student.student_id, student.rfid_card_id)
                continue
            by_card[student.rfid_card_id] = student
            card_by_student_id[student.student_id] = student.rfid_card_id

        with self._lock:
            self._by_card = by_card
            self._card_by_student_id = card_by_student_id
        logger.info('Loaded %d students into the directory', len(by_card))
        return len(by_card)

    def register(self, student: Student) -> Student:
        with self._lock:
            if self.has_card(student.rfid_card_id):
                raise RegistrationFailed('This RFID card is already registered')
            if self.has_student_id(student.student_id):
                raise RegistrationFailed(f'Student ID {student.student_id} is already registered')

        try:
            row = self.api.create_student(student.to_api_payload())
        except ApiError as exc:
            raise RegistrationFailed(exc.message) from exc

        try:
            stored = Student.from_api(row or {}, defaults=student)
        except ValueError as exc:
            raise RegistrationFailed(f'Server returned an unusable student record: {exc}') from exc

        with self._lock:
            # Another registration may have claimed the card while the request was in flight
            if self.has_card(stored.rfid_card_id) or self.has_student_id(stored.student_id):
                raise RegistrationFailed('This student was registered by another request')
            self._by_card[stored.rfid_card_id] = stored
            self._card_by_student_id[stored.student_id] = stored.rfid_card_id
        logger.info('Registered %s (%s) on card %s', stored.full_name, stored.student_id, stored.rfid_card_id)
        return stored

    def search(self, query: Optional[str] = None) -> List[Student]:
        students = self.all()
        if not query:
            return students
        query = query.strip().lower()
        return [
            s for s in students
            if query in s.full_name.lower()
            or query in s.student_id.lower()
            or query in s.rfid_card_id.lower()
            or query in (s.course or '').lower()
        ]

    def all(self) -> List[Student]:
        with self._lock:
            return list(self._by_card.values())

    def __len__(self):
        return len(self._by_card)

    def __iter__(self) -> Iterator[Student]:
        return iter(self.all())

    def __contains__(self, card_id):
        return self.has_card(card_id)
