"""Error taxonomy. Every error carries a message fit for display to the user."""


class GasProError(Exception):
    """Base exception for all dashboard errors."""
    pass


class ValidationError(GasProError):
    """Raised when a record or change payload does not have the expected shape."""
    pass


class StoreError(GasProError):
    """Raised when a backend operation fails. The change is not applied locally."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Could not {operation} record: {message}")


class RecordNotFoundError(GasProError):
    """Raised when an update or delete targets an unknown id."""
    pass


class DuplicateRecordError(GasProError):
    """Raised when a write would create a second record for the same key."""

    def __init__(self, kind: str, key: tuple, message: str):
        self.kind = kind
        self.key = key
        super().__init__(message)


class SpreadsheetImportError(GasProError):
    """Base class for daily report import failures. The import is aborted."""
    pass


class WorkbookParseError(SpreadsheetImportError):
    pass


class DateCellEmptyError(SpreadsheetImportError):
    pass


class InvalidDateFormatError(SpreadsheetImportError):
    pass


class NoValidDataError(SpreadsheetImportError):
    pass

