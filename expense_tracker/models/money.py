"""
Money value type.

Amounts are signed 64-bit integers of minor units (cents). Arithmetic
stays in integers; Decimal is used only when dividing by 100 for display
or for the advisory prompt.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Union

from pydantic import BaseModel, ConfigDict, Field

MIN_MINOR_UNITS = -(2 ** 63)
MAX_MINOR_UNITS = 2 ** 63 - 1

_CENT = Decimal("0.01")

# locale -> currency symbol
CURRENCY_SYMBOLS = {
    "zh_CN": "¥",
    "zh_HK": "HK$",
    "zh_TW": "NT$",
    "ja_JP": "¥",
    "en_US": "$",
    "en_GB": "£",
    "en_IN": "₹",
    "de_DE": "€",
    "fr_FR": "€",
}
GENERIC_CURRENCY_SIGN = "¤"


class Money(BaseModel):
    """An amount of money in minor units."""

    model_config = ConfigDict(frozen=True)

    minor_units: int = Field(
        default=0,
        strict=True,
        ge=MIN_MINOR_UNITS,
        le=MAX_MINOR_UNITS,
        description="Amount in minor units (e.g. cents)"
    )

    def __init__(self, minor_units: int = 0, **data):
        super().__init__(minor_units=minor_units, **data)

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def from_major(cls, value: Union[str, int, Decimal]) -> "Money":
        """
        Parse a major-unit amount such as "12.34" into minor units.

        Rounds half up to the nearest cent. Floats are rejected so that
        binary rounding never reaches the ledger.
        """
        if isinstance(value, float):
            raise ValueError("Use a string or Decimal for money, not float")
        try:
            major = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a valid amount: {value!r}")
        if not major.is_finite():
            raise ValueError(f"Not a valid amount: {value!r}")
        return cls(int((major * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)))

    def add(self, other: "Money") -> "Money":
        return Money(self.minor_units + other.minor_units)

    def subtract(self, other: "Money") -> "Money":
        return Money(self.minor_units - other.minor_units)

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return Money(-self.minor_units)

    def __lt__(self, other: "Money") -> bool:
        return self.minor_units < other.minor_units

    def __le__(self, other: "Money") -> bool:
        return self.minor_units <= other.minor_units

    def __gt__(self, other: "Money") -> bool:
        return self.minor_units > other.minor_units

    def __ge__(self, other: "Money") -> bool:
        return self.minor_units >= other.minor_units

    @property
    def is_positive(self) -> bool:
        return self.minor_units > 0

    @property
    def is_negative(self) -> bool:
        return self.minor_units < 0

    def to_major(self) -> Decimal:
        """Amount in major units, exact to the cent."""
        return (Decimal(self.minor_units) / 100).quantize(_CENT)

    def to_display(self, locale: str = "zh_CN") -> str:
        """
        Format for display, e.g. "¥1,234.56" or "-¥12.34".

        Grouping is always "," with "." as the decimal mark.
        """
        symbol = CURRENCY_SYMBOLS.get(locale, GENERIC_CURRENCY_SIGN)
        sign = "-" if self.minor_units < 0 else ""
        return f"{sign}{symbol}{abs(self.to_major()):,.2f}"

    def __str__(self) -> str:
        return f"{self.to_major()}"


def sum_money(amounts: Iterable[Money]) -> Money:
    """Sum an iterable of Money, starting from zero."""
    total = 0
    for amount in amounts:
        total += amount.minor_units
    return Money(total)
