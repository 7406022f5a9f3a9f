"""
Typed parsing of raw request fields.

Each ``parse_*`` function returns a :class:`Parsed` holding either the
converted value or the reason the input was rejected, so callers can
collect every problem before deciding to fail.

Numbers are bounded to what the ``products`` columns hold: ``Integer``
for quantities and ``Numeric(10, 2)`` for the value.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Generic, List, NamedTuple, Optional, TypeVar

from .errors import ValidationError

T = TypeVar("T")

MISSING = "missing"
NOT_A_NUMBER = "not_a_number"
NOT_AN_INTEGER = "not_an_integer"
NEGATIVE = "negative"
NOT_POSITIVE = "not_positive"
OUT_OF_RANGE = "out_of_range"
TOO_PRECISE = "too_precise"

INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1

VALUE_LIMIT = Decimal(10) ** 8
VALUE_STEP = Decimal("0.01")

# Decimals whose exponent is past this are never converted to int
_MAX_ADJUSTED_EXPONENT = 18


class Parsed(Generic[T]):
    __slots__ = ("value", "reason")

    def __init__(self, value: Optional[T] = None, reason: Optional[str] = None):
        self.value = value
        self.reason = reason

    @property
    def ok(self) -> bool:
        return self.reason is None

    def __repr__(self) -> str:
        return f"Parsed(value={self.value!r}, reason={self.reason!r})"


def _blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def _decimal(raw: Any) -> Optional[Decimal]:
    """Finite Decimal for ``raw`` or None; bools are not numbers."""
    if isinstance(raw, bool):
        return None
    try:
        number = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_text(raw: Any) -> Parsed[str]:
    if _blank(raw):
        return Parsed(reason=MISSING)
    return Parsed(str(raw).strip())


def parse_number(raw: Any) -> Parsed[float]:
    """Money amount: below 10^8 in magnitude with at most two decimal places."""
    if _blank(raw):
        return Parsed(reason=MISSING)
    number = _decimal(raw)
    if number is None:
        return Parsed(reason=NOT_A_NUMBER)
    if abs(number) >= VALUE_LIMIT:
        return Parsed(reason=OUT_OF_RANGE)
    if number != number.quantize(VALUE_STEP):
        return Parsed(reason=TOO_PRECISE)
    return Parsed(float(number))


def parse_int(raw: Any, minimum: Optional[int] = None) -> Parsed[int]:
    """Accept ints and integral strings/floats ("10", "10.0", 10.0); reject "2.5"."""
    if _blank(raw):
        return Parsed(reason=MISSING)
    if isinstance(raw, bool):
        return Parsed(reason=NOT_AN_INTEGER)
    if isinstance(raw, int):
        number = raw
    else:
        as_decimal = _decimal(raw)
        if as_decimal is None or as_decimal != as_decimal.to_integral_value():
            return Parsed(reason=NOT_AN_INTEGER)
        if as_decimal.adjusted() > _MAX_ADJUSTED_EXPONENT:
            # Past any column range; skip building the huge int
            number = INT_MAX + 1 if as_decimal > 0 else INT_MIN - 1
        else:
            number = int(as_decimal)
    if minimum is not None and number < minimum:
        return Parsed(reason=NEGATIVE if minimum == 0 else NOT_POSITIVE)
    if not INT_MIN <= number <= INT_MAX:
        return Parsed(reason=OUT_OF_RANGE)
    return Parsed(number)


class ProductFields(NamedTuple):
    name: str
    value: float
    quantity: int
    min_quantity: int


_MESSAGES = {
    "name": {MISSING: "Name is required."},
    "value": {
        MISSING: "Value is required.",
        NOT_A_NUMBER: "Value must be a valid number.",
        OUT_OF_RANGE: "Value must be below 100000000.",
        TOO_PRECISE: "Value must have at most 2 decimal places.",
    },
    "quantity": {
        MISSING: "Current quantity is required.",
        NOT_AN_INTEGER: "Current quantity must be a whole number.",
        NEGATIVE: "Current quantity cannot be negative.",
        OUT_OF_RANGE: "Current quantity is too large.",
    },
    "minQuantity": {
        MISSING: "Minimum quantity is required.",
        NOT_AN_INTEGER: "Minimum quantity must be a whole number.",
        OUT_OF_RANGE: "Minimum quantity is out of range.",
    },
}


def validate_product_fields(name: Any, value: Any, quantity: Any, min_quantity: Any) -> ProductFields:
    """Parse the four product fields, raising one ValidationError listing every problem."""
    results = [
        ("name", parse_text(name)),
        ("value", parse_number(value)),
        ("quantity", parse_int(quantity, minimum=0)),
        ("minQuantity", parse_int(min_quantity)),
    ]
    errors: List[str] = [
        _MESSAGES[field][result.reason] for field, result in results if not result.ok
    ]
    if errors:
        raise ValidationError(errors)
    return ProductFields(*(result.value for _, result in results))


def parse_movement_quantity(raw: Any) -> Optional[int]:
    """Stock movement amount: a whole number greater than zero, else None."""
    result = parse_int(raw, minimum=1)
    return result.value if result.ok else None
