class LedgerError(Exception):
    status_code = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(LedgerError):
    pass


class ConfirmationRequired(ValidationError):
    status_code = 409


class OverpaymentError(LedgerError):
    status_code = 422


class PermissionDenied(LedgerError):
    status_code = 403


class NotFound(LedgerError):
    status_code = 404


class PersistenceError(LedgerError):
    status_code = 503


class ConcurrentModificationError(PersistenceError):
    status_code = 409
