"""
Exceptions raised by the EduLMS service layer.
Route handlers catch these per operation and turn them into a toast or a JSON error.
"""


class LMSError(Exception):
    """Base class; `message` is safe to show to the end user."""
    status_code = 500

    def __init__(self, message="An error occurred. Please try again."):
        super().__init__(message)
        self.message = message


class ValidationError(LMSError):
    status_code = 400


class AuthError(LMSError):
    status_code = 401


class NotFound(LMSError):
    status_code = 404


class UploadError(ValidationError):
    pass


class DataStoreError(LMSError):
    status_code = 502
