class SaveDataError(Exception):
    """Base exception for save data errors."""


class InvalidRequest(SaveDataError):
    """Raised for caller errors: bad data type, slot, account id or body."""


class AuthenticationError(SaveDataError):
    """Raised when a request cannot be resolved to an account."""


class DecodeError(SaveDataError):
    """Raised when a wire or durable payload cannot be parsed."""


class WireDecodeError(DecodeError, InvalidRequest):
    """Raised when a client-submitted body is malformed."""


class CorruptSaveError(DecodeError):
    """Raised when a stored entry cannot be decoded (store corruption)."""


class InvalidSystemData(InvalidRequest):
    """Raised when a system save carries an all-zero identity pair."""


class EncodeError(SaveDataError):
    """Raised when the server cannot serialize or compress its own save."""


class StoreFault(SaveDataError):
    """Raised when the blob store fails to create, write, read or delete."""


class SaveNotFound(StoreFault):
    """Raised when a requested save entry does not exist."""


class LedgerFault(SaveDataError):
    """Raised by account stores when an external bookkeeping call fails."""


class ConfigError(SaveDataError):
    """Raised when configuration cannot be loaded or validated."""
