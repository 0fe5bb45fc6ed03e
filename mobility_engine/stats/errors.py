"""
Errors raised by the per-group fit layer
"""
from typing import Any, Dict, List, Optional


class FitError(Exception):
    """Base exception for fit errors"""
    def __init__(self, message: str, column: str = None, suggestion: str = None):
        self.message = message
        self.column = column
        self.suggestion = suggestion
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": type(self).__name__, "message": self.message}
        if self.column is not None:
            out["column"] = self.column
        if self.suggestion is not None:
            out["suggestion"] = self.suggestion
        return out


class ColumnNotFoundError(FitError):
    """A requested column is absent from the table"""
    def __init__(self, column: str, available: Optional[List[str]] = None):
        self.available = list(available or [])
        suggestion = None
        if self.available:
            suggestion = "Available columns: " + ", ".join(self.available)
        super().__init__(f"Column '{column}' not found", column=column, suggestion=suggestion)

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["available"] = self.available
        return out


class ColumnTypeError(FitError):
    """A response or predictor column holds non-numeric values"""


class InvalidTableError(FitError):
    """The table is empty or has records without a group key"""


class InsufficientDataError(FitError):
    """A group does not have enough usable paired observations to fit"""
    def __init__(self, group: str, n_usable: int, reason: str = None):
        self.group = group
        self.n_usable = n_usable
        self.reason = reason or f"{n_usable} usable record(s), need at least 2"
        super().__init__(
            f"Insufficient data for group '{group}': {self.reason}",
            suggestion="Skip the group (on_insufficient='skip') or supply more observations",
        )

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["group"] = self.group
        out["n_usable"] = self.n_usable
        return out
