"""
errors.py — Domain errors raised by the services layer.
Routes translate these into HTTP responses; nothing here knows about FastAPI.
"""


class NotFoundError(Exception):
    """The requested row does not exist inside the given startup call scope."""


class BudgetRuleError(Exception):
    """A budgeting rule rejected the change (bad category, over-spend on approval)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
