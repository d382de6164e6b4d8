class ConfigurationError(Exception):
    """Required configuration is missing or malformed; the process must not start."""

class StoreError(Exception):
    """A Store operation failed after the database was reached."""

class StoreUnavailableError(StoreError):
    """The database could not be opened."""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
        self.message = message

class Unavailable(ServiceError):
    status_code = 503

    def __init__(self, message: str = "Database service not available.") -> None:
        super().__init__(message)

class ValidationError(ServiceError):
    status_code = 400

    def __init__(self, message: str = "Message content cannot be empty") -> None:
        super().__init__(message)
