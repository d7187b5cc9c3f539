"""Error taxonomy shared by the order core and its remote collaborators."""


class OrderTrackingError(Exception):
    """Base for every error raised by the orders package."""


class ValidationError(OrderTrackingError):
    """A field of an order request failed validation."""

    EMPTY_CUSTOMER_NAME = "EmptyCustomerName"
    CUSTOMER_NAME_TOO_LONG = "CustomerNameTooLong"
    INVALID_PHONE_FORMAT = "InvalidPhoneFormat"
    NOTES_TOO_LONG = "NotesTooLong"
    INVALID_NOTES = "InvalidNotes"

    def __init__(self, field: str, reason: str, message: str | None = None):
        self.field = field
        self.reason = reason
        super().__init__(message or f"{field}: {reason}")


class NotAuthenticatedError(OrderTrackingError):
    """No acting user was available when one was required."""

    def __init__(self, message: str = "You must be logged in to change orders"):
        super().__init__(message)


class TerminalStateError(OrderTrackingError):
    """Raised when advancing an order that is already collected."""

    def __init__(self, status):
        self.status = status
        super().__init__(f"Order is already {status} and cannot advance")


class RemoteWriteError(OrderTrackingError):
    """A create/update against the remote store failed."""

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail if status_code is None else f"[{status_code}] {detail}")


class StaleOrderError(RemoteWriteError):
    """Conditional write lost: the stored status no longer matches the expected one."""


class RemoteSubscriptionError(OrderTrackingError):
    """The live feed could not be established or was lost."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)
