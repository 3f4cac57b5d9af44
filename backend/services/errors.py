class ServiceError(Exception):
    """Base class for errors raised by the service layer."""


class ValidationError(ServiceError):
    """Bad or missing input. User-correctable."""


class AuthError(ServiceError):
    """Missing or invalid credentials or token."""


class StorageError(ServiceError):
    """The durable store could not be written."""
