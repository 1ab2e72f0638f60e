"""Custom exception classes for the application."""


class KrolistException(Exception):
    """Base exception for all Krolist errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class StoreError(KrolistException):
    """Raised when the external store rejects or fails a call."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Store error during {operation}: {message}")


class FunctionInvocationError(KrolistException):
    """Raised when an edge function cannot be reached or answers garbage."""

    def __init__(self, function: str, message: str):
        self.function = function
        super().__init__(f"Function {function} failed: {message}")


class UnknownTitleError(KrolistException):
    """Raised when an edit targets a title that is not in the catalog."""

    def __init__(self, title: str):
        self.title = title
        super().__init__(f"No product titled '{title}'")


class RunInProgressError(KrolistException):
    """Raised when a second price run starts while one is in flight."""

    def __init__(self):
        super().__init__("A price update run is already in progress")
