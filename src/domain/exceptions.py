"""
Domain Exceptions Module

Errors surfaced to the user when an operation is rejected.
No state is mutated when one of these is raised.
"""


class AbsenceTrackerError(Exception):
    """Base exception for application errors."""
    pass


class ValidationError(AbsenceTrackerError):
    """Raised when user input is rejected (training year, account form)."""
    pass


class ImportFormatError(AbsenceTrackerError):
    """
    Raised when an import file cannot be used.

    The whole file is rejected; no participant is imported.
    """
    def __init__(self, message: str, missing_columns: list = None):
        self.missing_columns = missing_columns or []
        self.message = message
        super().__init__(self.message)


class StorageError(AbsenceTrackerError):
    """
    Raised when the state cannot be written.

    The files on disk keep the previous state.
    """
    pass
