from decimal import Decimal, ROUND_HALF_UP

# Tolerance for debit == credit on a single journal entry
BALANCE_EPSILON = 0.01


def money(value):
    """
    Normalize a numeric value to a 2‑decimal float suitable for display
    and JSON serialization.

    - Accepts None, int, float, Decimal, numeric str
    - Returns float rounded to 2 decimal places
    """

    if value is None or value == "":
        return 0.0

    # Convert to Decimal for safe rounding
    amount = Decimal(str(value)).quantize(
        Decimal("0.01"),
        rounding=ROUND_HALF_UP
    )

    return float(amount)


def is_balanced(total_debit, total_credit):
    return abs(float(total_debit or 0.0) - float(total_credit or 0.0)) <= BALANCE_EPSILON + 1e-9
