class AttendTrackError(Exception):
    """Base class for dashboard errors."""

    def __init__(self, message=None):
        self.message = message or self.__class__.__doc__ or self.__class__.__name__
        super().__init__(self.message)


class ApiError(AttendTrackError):
    """The remote attendance API could not be reached or rejected the request."""

    def __init__(self, message=None, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class DirectoryUnavailable(AttendTrackError):
    """The student directory could not be loaded."""


class RegistrationFailed(AttendTrackError):
    """Student registration was rejected."""

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class StudentNotFound(AttendTrackError):
    """No registered student has the given student ID."""

    def __init__(self, student_id):
        super().__init__(f'Student {student_id} not found')
        self.student_id = student_id
