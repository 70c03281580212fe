class StoreEdgeError(Exception):
    """Base exception for the store edge sync layer."""

    default_message = "An error occurred in the store edge"

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        error_dict = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            error_dict["code"] = self.code
        if self.details:
            error_dict["details"] = self.details
        return error_dict


class StorageUnavailableError(StoreEdgeError):
    """The local database could not be opened; offline mode is unavailable."""

    default_message = "Local storage unavailable"


class StoreNotInitializedError(StoreEdgeError):
    default_message = "Database not initialized"


class ConstraintViolationError(StoreEdgeError):
    """A local write was rejected by a schema constraint."""

    default_message = "Constraint violation"


class InsufficientStockError(ConstraintViolationError):
    default_message = "Insufficient stock"


class NotFoundError(StoreEdgeError):
    default_message = "Not found"


class NetworkUnavailableError(StoreEdgeError):
    """The remote endpoint could not be reached (or did not answer in time)."""

    default_message = "No network connection"


class RemoteRejectedError(StoreEdgeError):
    """The remote endpoint answered but refused the operation."""

    default_message = "Remote endpoint rejected the request"

    def __init__(self, message=None, code=None, details=None, status_code=None):
        super().__init__(message, code, details)
        self.status_code = status_code
