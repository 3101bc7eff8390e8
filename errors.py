class SecretSantaError(Exception):
    """Base error; `status_code` is what the HTTP layer reports."""

    status_code = 500

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class ValidationError(SecretSantaError):
    status_code = 400


class NotFoundError(SecretSantaError):
    status_code = 404


class RateLimitedError(SecretSantaError):
    status_code = 429

    def __init__(self, message: str = 'Too many requests. Please wait a minute.'):
        super().__init__(message)


class PersistenceError(SecretSantaError):
    """Reading or writing the data file failed. Logged, never surfaced."""


class CorruptDataError(PersistenceError):
    """The data file exists but is not valid JSON."""
