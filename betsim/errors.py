"""Exceptions raised by the betting core."""
from typing import List, Optional


class BettingError(Exception):
    """Base class for every recoverable betting error."""


class ValidationError(BettingError):
    """Malformed user input (amounts, scores, results, markets)."""


class UnknownMarketError(ValidationError):
    def __init__(self, code: str):
        super().__init__(f"Unknown market type: {code}")
        self.code = code


class NotFoundError(BettingError):
    """Unknown match, team, bet or user."""

    def __init__(self, message: str, suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.suggestions = suggestions or []


class StateError(BettingError):
    """Operation not allowed in the current lifecycle state."""


class BettingPausedError(StateError):
    def __init__(self):
        super().__init__("Betting is currently paused by an administrator")


class ComboConstraintError(BettingError):
    """Mutually exclusive selections requested in one combined bet."""

    def __init__(self, group: str, message: Optional[str] = None):
        super().__init__(message or f"Only one {group} selection is allowed in a combined bet")
        self.group = group


class InsufficientBalanceError(BettingError):
    def __init__(self, balance: float, amount: float):
        super().__init__(f"Insufficient balance: {balance:.2f} available, {amount:.2f} required")
        self.balance = balance
        self.amount = amount
