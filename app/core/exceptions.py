from typing import Optional, Any

class ReceiptBotError(Exception):
    """
    Base exception for ReceiptBot application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class TransportUnavailableError(ReceiptBotError):
    """
    Raised when the user store or the messaging transport cannot be
    reached at startup. Fatal: the process exits.
    """
    def __init__(self, message: str = "Transport unavailable", details: Optional[Any] = None):
        super().__init__(message, code="TRANSPORT_UNAVAILABLE", status_code=503, details=details)

class PersistenceError(ReceiptBotError):
    """
    Raised when a user store read or write fails mid-request.
    """
    def __init__(self, message: str = "Persistence failure", details: Optional[Any] = None):
        super().__init__(message, code="PERSISTENCE_FAILURE", status_code=503, details=details)
