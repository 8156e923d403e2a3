class RequestValidationError(Exception):
    """Raised when an incoming order request fails validation (missing fields, bad date shape)."""
    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class OrderStorageError(Exception):
    """Raised when the order workbook cannot be read, built or written."""
    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidOrderDateError(OrderStorageError):
    """Raised when a requested order date is not a real yyyy-MM-dd calendar date."""
