from __future__ import annotations

"""Grid engine exception classes.

Programming errors (unknown sort columns, overlapping reveal requests) are
raised and meant to surface in tests.  Provider failures are wrapped in
:class:`ProviderError` so coordinators can log them and carry on with an
empty result.
"""

from typing import Optional


class GridError(Exception):
    """Base exception for all grid engine errors."""

    def __init__(self, message: str, grid_name: Optional[str] = None,
                 cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.grid_name = grid_name
        self.cause = cause

    def __str__(self) -> str:
        if self.grid_name:
            return f"[Grid: {self.grid_name}] {super().__str__()}"
        return super().__str__()


class UnknownSortColumnError(GridError, LookupError):
    """Raised when a column id is missing from the variant's sort table."""

    def __init__(self, column_id: str, known_columns: Optional[list[str]] = None,
                 grid_name: Optional[str] = None) -> None:
        self.column_id = column_id
        self.known_columns = known_columns or []
        if self.known_columns:
            message = f"Unknown sort column '{column_id}'. Known columns: {', '.join(self.known_columns)}"
        else:
            message = f"Unknown sort column '{column_id}'"
        super().__init__(message, grid_name)


class RevealInProgressError(GridError, AssertionError):
    """Raised when a reveal is requested while another is still pending."""


class ProviderError(GridError):
    """Raised (or wrapped) when a data provider request fails."""

    def __init__(self, message: str, request: Optional[str] = None,
                 cause: Optional[BaseException] = None) -> None:
        super().__init__(message, cause=cause)
        self.request = request
