# app/exceptions.py
"""
Error taxonomy for the yard core.
Each error carries the HTTP status the API layer answers with; the core
itself never imports FastAPI.
"""


class PatioError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(PatioError):
    """Malformed procedure/process number or plate. Raised before any write."""
    status_code = 422


class ConflictError(PatioError):
    """Another vehicle already holds the original plate."""
    status_code = 409


class NotFoundError(PatioError):
    status_code = 404


class BadRequestError(PatioError):
    status_code = 400


class InvalidStateError(PatioError):
    """Revert attempted on an entry that is already terminal."""
    status_code = 409


class UnsupportedActionError(InvalidStateError):
    """Revert attempted on an action or entity kind that has no inverse."""
    status_code = 400


class StorageUnavailableError(PatioError):
    status_code = 503
