class AttendanceError(Exception):
    """Base exception for the attendance system."""


# ==========================
# CAMERA
# ==========================
class CameraError(AttendanceError):
    """Raised when the camera cannot be used."""


class NoDevice(CameraError):
    """Raised when the configured video source does not open."""


class DeviceAccessDenied(CameraError):
    """Raised when the capture backend refuses access to the device."""


class CameraBusy(CameraError):
    """Raised when a camera handle is requested while another one is still open."""


# ==========================
# ENROLLMENT / USERS
# ==========================
class EnrollmentError(AttendanceError):
    """Raised when a user cannot be enrolled."""


class DuplicateExternalCode(EnrollmentError):
    """Raised when the employee ID is already registered."""

    def __init__(self, employee_id: str):
        super().__init__("An employee with this ID is already registered.")
        self.employee_id = employee_id


class InvalidEnrollment(EnrollmentError):
    """Raised when enrollment data is incomplete."""


class UserNotFound(AttendanceError):
    """Raised when a user ID does not exist."""

    def __init__(self, user_id: str):
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id
