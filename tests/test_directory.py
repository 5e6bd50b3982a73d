from unittest import mock

import pytest

from exceptions import ApiError, DirectoryUnavailable, RegistrationFailed
from models import Student
from services.demo import DemoBackend
from services.directory import Directory


def _student(**overrides):
    values = dict(student_id='2024-0100', full_name='Ana Lim', rfid_card_id='rfid-100-xyz',
                  guardian_name='Rosa Lim', guardian_phone='+639171112222', course='Data Science', section='C')
    values.update(overrides)
    return Student(**values)


@pytest.fixture
def directory():
    directory = Directory(DemoBackend())
    directory.load_all()
    return directory


def test_load_all_indexes_by_card_and_student_id(directory):
    assert len(directory) == 3
    assert directory.lookup('rfid-001-abc').full_name == 'Maria Santos'
    assert directory.find_by_student_id('2024-0002').rfid_card_id == 'RFID-002-DEF'
    assert 'RFID-003-GHI' in directory


def test_load_all_skips_malformed_and_duplicate_rows():
    rows = [
        {'student_id': '2024-0001', 'rfid': 'A', 'name': 'One'},
        {'student_id': '2024-0002', 'name': 'No card'},
        {'student_id': '2024-0003', 'rfid': 'a', 'name': 'Same card'},
    ]
    directory = Directory(DemoBackend(rows=rows))
    assert directory.load_all() == 1
    assert directory.lookup('A').full_name == 'One'


def test_failed_load_keeps_previous_cache(directory):
    directory.api = mock.Mock()
    directory.api.fetch_students.side_effect = ApiError('timeout')

    with pytest.raises(DirectoryUnavailable, match='timeout'):
        directory.load_all()
    assert len(directory) == 3


def test_register_stores_server_row(directory):
    stored = directory.register(_student())

    assert stored.id == '4'
    assert stored.rfid_card_id == 'RFID-100-XYZ'
    assert directory.lookup('RFID-100-XYZ') is stored
    assert directory.find_by_student_id('2024-0100') is stored
    assert stored.course == 'Data Science'


def test_register_rejects_known_card(directory):
    with pytest.raises(RegistrationFailed, match='RFID card is already registered'):
        directory.register(_student(rfid_card_id='RFID-001-ABC'))


def test_register_rejects_known_student_id(directory):
    with pytest.raises(RegistrationFailed) as excinfo:
        directory.register(_student(student_id='2024-0001'))
    assert excinfo.value.reason == 'Student ID 2024-0001 is already registered'
    assert len(directory) == 3


def test_register_surfaces_server_rejection(directory):
    directory.api.create_student({'rfid': 'RFID-100-XYZ', 'studentId': '2024-0555', 'name': 'Elsewhere'})

    with pytest.raises(RegistrationFailed, match='RFID card already registered'):
        directory.register(_student())
    assert not directory.has_card('RFID-100-XYZ')


def test_search_matches_name_id_card_and_course(directory):
    assert [s.student_id for s in directory.search('maria')] == ['2024-0001']
    assert [s.student_id for s in directory.search('2024-0003')] == ['2024-0003']
    assert [s.student_id for s in directory.search('def')] == ['2024-0002']
    assert len(directory.search('computer science')) == 2
    assert len(directory.search('')) == 3
