class ServiceError(Exception):
    """Base exception for data-access failures."""

    status_code = 500

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class NotFoundError(ServiceError):
    status_code = 404


class PermissionDeniedError(ServiceError):
    status_code = 403


class ConflictError(ServiceError):
    """Raised when a guarded write finds the row already changed."""

    status_code = 409


class ValidationFailedError(ServiceError):
    """Raised when submitted data breaks a form rule."""

    status_code = 422

    def __init__(self, message: str, errors: dict | list | None = None):
        super().__init__(message)
        self.errors = errors or {}


class InvalidTransitionError(ServiceError):
    """Raised when a status change is not allowed from the current status."""

    status_code = 409

    def __init__(self, kind: str, current: str, target: str):
        super().__init__(f"Cannot move {kind} from '{current}' to '{target}'")
        self.kind = kind
        self.current = current
        self.target = target
