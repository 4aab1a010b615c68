from backoffice.catalog.exceptions import InsufficientStockError  # noqa: F401


class DraftError(Exception):
    """A line-item draft cannot be built as requested"""


class CodeConflictError(Exception):
    """No free sequence code could be reserved"""
