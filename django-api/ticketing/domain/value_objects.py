"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Self
from uuid import UUID

CENT = Decimal("0.01")


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TicketTypeId:
    """Unique identifier for a TicketType."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TransactionId:
    """Unique identifier for a purchase Transaction."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UserId:
    """Identifier of a buyer or organizer, issued by the auth collaborator."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    @classmethod
    def zero(cls) -> Self:
        return cls(amount=Decimal("0"))

    @classmethod
    def of(cls, value: Decimal | int | str) -> Self:
        return cls(amount=Decimal(value))

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def times(self, quantity: int) -> "Money":
        return Money(self.amount * quantity)

    def percentage(self, percent: Decimal) -> "Money":
        """Return `percent`% of this amount, rounded half-up to cents."""
        return Money((self.amount * percent / 100).quantize(CENT, rounding=ROUND_HALF_UP))

    def minus_clamped(self, other: "Money") -> "Money":
        """Subtract, flooring the result at zero."""
        return Money(max(Decimal("0"), self.amount - other.amount))

    def minus_points(self, points: int) -> "Money":
        # Raises ValueError when points exceed the amount.
        return Money(self.amount - points)

    def whole_units(self) -> int:
        return int(self.amount.to_integral_value(rounding=ROUND_FLOOR))

    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")
