"""Exceptions raised by state transitions when a guard rejects them."""


class FamilyStateError(Exception):
    """Base exception for rejected state transitions."""
    pass


class NotFoundError(FamilyStateError):
    """Referenced record does not exist."""
    pass


class LastUserError(FamilyStateError):
    """Removing the user would leave the roster empty."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("You cannot delete the last user.")


class InsufficientPointsError(FamilyStateError):
    """A redemption would take a balance below zero."""

    def __init__(self, user_id: str, balance: int, cost: int):
        self.user_id = user_id
        self.balance = balance
        self.cost = cost
        self.shortfall = cost - balance
        super().__init__(f"Need {self.shortfall} more points")


class InvalidPinError(FamilyStateError):
    """PIN is not exactly four digits."""

    def __init__(self) -> None:
        super().__init__("PIN must be 4 digits")
