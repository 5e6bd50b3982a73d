from unittest import mock

import pytest
import requests

from exceptions import ApiError
from services.api_client import AttendanceApiClient


def _response(status=200, payload=None, json_error=False):
    response = mock.Mock()
    response.status_code = status
    response.ok = 200 <= status < 400
    if json_error:
        response.json.side_effect = ValueError('no json')
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return mock.Mock(spec=requests.Session)


def test_fetch_students_accepts_bare_list(session):
    session.request.return_value = _response(payload=[{'student_id': '2024-0001', 'rfid': 'X'}])
    client = AttendanceApiClient('http://api.local/', api_key='secret', timeout=3, session=session)

    rows = client.fetch_students()

    assert rows == [{'student_id': '2024-0001', 'rfid': 'X'}]
    method, url = session.request.call_args[0]
    kwargs = session.request.call_args[1]
    assert (method, url) == ('GET', 'http://api.local/api/students')
    assert kwargs['headers']['X-API-Key'] == 'secret'
    assert kwargs['timeout'] == 3


def test_fetch_students_unwraps_envelope(session):
    session.request.return_value = _response(payload={'students': [{'id': 1}]})
    assert AttendanceApiClient('http://api.local', session=session).fetch_students() == [{'id': 1}]


def test_no_api_key_header_when_not_configured(session):
    session.request.return_value = _response(payload=[])
    AttendanceApiClient('http://api.local', session=session).fetch_students()
    assert 'X-API-Key' not in session.request.call_args[1]['headers']


def test_http_error_carries_server_message(session):
    session.request.return_value = _response(status=409, payload={'error': 'RFID card already registered'})
    client = AttendanceApiClient('http://api.local', session=session)

    with pytest.raises(ApiError) as excinfo:
        client.create_student({'rfid': 'RFID-001-ABC'})

    assert excinfo.value.message == 'RFID card already registered'
    assert excinfo.value.status_code == 409


def test_http_error_without_body(session):
    session.request.return_value = _response(status=503, json_error=True)
    with pytest.raises(ApiError) as excinfo:
        AttendanceApiClient('http://api.local', session=session).fetch_students()
    assert 'HTTP 503' in excinfo.value.message


def test_success_false_body_is_an_error(session):
    session.request.return_value = _response(payload={'success': False, 'message': 'Invalid data'})
    with pytest.raises(ApiError, match='Invalid data'):
        AttendanceApiClient('http://api.local', session=session).create_student({})


def test_transport_failure_becomes_api_error(session):
    session.request.side_effect = requests.exceptions.ConnectionError('refused')
    with pytest.raises(ApiError, match='Could not reach'):
        AttendanceApiClient('http://api.local', session=session).fetch_students()


def test_create_student_unwraps_student_key(session):
    session.request.return_value = _response(status=201, payload={'student': {'id': 7}})
    client = AttendanceApiClient('http://api.local', session=session)
    assert client.create_student({'rfid': 'X'}) == {'id': 7}
    assert session.request.call_args[1]['json'] == {'rfid': 'X'}


def test_report_scan_posts_card(session):
    session.request.return_value = _response(payload={'status': 'unregistered'})
    client = AttendanceApiClient('http://api.local', session=session)
    assert client.report_scan('RFID-9') == {'status': 'unregistered'}
    assert session.request.call_args[0] == ('POST', 'http://api.local/api/attendance/scan')
