from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")


def to_cents(amount: Decimal | int | str) -> int:
    """USDT amount -> integer cents (half-up to the cent)."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValueError(f"invalid_amount: {amount!r}") from e
    if not value.is_finite():
        raise ValueError(f"invalid_amount: {amount!r}")
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(CENT)


def percent_of(cents: int, percent: int | Decimal) -> int:
    """`percent`% of `cents`, rounded half-up to the cent."""
    raw = Decimal(int(cents)) * Decimal(str(percent)) / 100
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def fmt_usdt(cents: int) -> str:
    return f"{from_cents(cents)} USDT"
