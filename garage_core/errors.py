# garage_core/errors.py


class ServiceError(Exception):
    """Raised by the record services; the message is safe to show to the user."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404


class CheckoutError(ServiceError):
    """A checkout or job-invoicing step failed after compensations ran."""

    def __init__(self, step, message):
        super().__init__(message)
        self.step = step


class FormValidationError(ServiceError):
    def __init__(self, errors, message="Invalid input."):
        super().__init__(message)
        self.errors = errors
