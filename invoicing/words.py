"""Amounts in words using the Indian numbering system (Lakh, Crore)."""

import math

ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven",
    "Eight", "Nine", "Ten", "Eleven", "Twelve", "Thirteen",
    "Fourteen", "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# (divisor, word), largest first
SCALES = [
    (10_000_000, "Crore"),
    (100_000, "Lakh"),
    (1_000, "Thousand"),
    (100, "Hundred"),
]


def to_words(n: int) -> str:
    """Spell out a whole number.

    Every scale word is followed by a space, so ``to_words(100)`` is
    ``"One Hundred "``; callers strip. Zero is the empty string.
    """
    n = int(n)
    if n < 0:
        return "Minus " + to_words(-n)
    if n < 20:
        return ONES[n]
    if n < 100:
        tens, ones = divmod(n, 10)
        return TENS[tens] + (" " + ONES[ones] if ones else "")
    for divisor, word in SCALES:
        if n >= divisor:
            head, rest = divmod(n, divisor)
            return to_words(head).rstrip() + " " + word + " " + to_words(rest)
    return ""


def amount_in_words(amount: float, unit: str = "Rupees") -> str:
    """Words for the whole part of ``amount`` followed by ``unit``.

    Paise are dropped, not converted. A zero amount is just the unit word,
    and so is an amount too large to represent.
    """
    if not math.isfinite(amount):
        return unit
    words = to_words(math.floor(amount)).strip()
    return f"{words} {unit}".strip()
