"""
Custom Application Exceptions
"""
from typing import Optional


class StockLedgerException(Exception):
    """Base exception for the stock ledger service"""
    pass


class ValidationError(StockLedgerException):
    """
    Raised when a transaction or policy record is malformed

    Carries the offending record's item code and reference so batch callers
    can report which record was rejected and carry on with the rest.
    """

    def __init__(self, message: str, item_code: Optional[str] = None, reference: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.item_code = item_code
        self.reference = reference


class DataSourceUnavailable(StockLedgerException):
    """Raised when a ledger, summary or policy source cannot be read"""

    def __init__(self, source: str, detail: str = ""):
        super().__init__(f"{source} unavailable: {detail}" if detail else f"{source} unavailable")
        self.source = source
        self.detail = detail
