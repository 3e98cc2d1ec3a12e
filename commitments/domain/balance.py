from decimal import Decimal


def calculate_balance(entries):
    """Sum of amounts over the entries that are not marked removed."""
    return sum((entry.amount for entry in entries if not entry.removed), Decimal("0"))
