"""Domain errors raised by the ledger services.

Each error carries the HTTP status the API answers with; the handler in
``splitgroups.main`` renders them as ``{"detail": ..., "error": ...}``.
"""


class LedgerError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def kind(self) -> str:
        return type(self).__name__


class NotFound(LedgerError):
    status_code = 404


class Forbidden(LedgerError):
    status_code = 403


class AlreadyMember(LedgerError):
    pass


class InvalidInvite(LedgerError):
    pass


class InvalidSplit(LedgerError):
    pass


class InvalidAmount(LedgerError):
    pass


class ConcurrentUpdate(LedgerError):
    status_code = 409
