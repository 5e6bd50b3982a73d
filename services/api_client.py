import logging
from typing import Any, Dict, List, Optional

import requests

from exceptions import ApiError

logger = logging.getLogger(__name__)


def _error_message(payload, default):
    if isinstance(payload, dict):
        for key in ('error', 'message'):
            if payload.get(key):
                return str(payload[key])
    return default


class AttendanceApiClient:
    """Thin client for the remote student and attendance API."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {'Accept': 'application/json'}
        if api_key:
            self.headers['X-API-Key'] = api_key

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            logger.error('%s %s failed: %s', method, url, exc)
            raise ApiError(f'Could not reach the attendance server: {exc}') from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not response.ok:
            message = _error_message(payload, f'Server returned HTTP {response.status_code}')
            logger.warning('%s %s -> %s: %s', method, url, response.status_code, message)
            raise ApiError(message, status_code=response.status_code, payload=payload)
        if isinstance(payload, dict) and payload.get('success') is False:
            raise ApiError(_error_message(payload, 'Request was rejected'),
                           status_code=response.status_code, payload=payload)
        return payload

    def fetch_students(self) -> List[Dict[str, Any]]:
        payload = self._request('GET', '/api/students')
        if isinstance(payload, dict):
            payload = payload.get('students', payload.get('data'))
        if not isinstance(payload, list):
            raise ApiError('Unexpected student list response')
        return payload

    def create_student(self, body: Dict[str, Any]) -> Dict[str, Any]:
        payload = self._request('POST', '/api/students', json=body)
        if isinstance(payload, dict) and isinstance(payload.get('student'), dict):
            return payload['student']
        if isinstance(payload, dict) and isinstance(payload.get('data'), dict):
            return payload['data']
        return payload if isinstance(payload, dict) else {}

    def report_scan(self, rfid: str) -> Dict[str, Any]:
        payload = self._request('POST', '/api/attendance/scan', json={'rfid': rfid})
        return payload if isinstance(payload, dict) else {}
