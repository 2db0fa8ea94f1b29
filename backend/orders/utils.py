from typing import Iterable, Tuple


def round_money(value: float) -> float:
    return round(float(value), 2)


def compute_subtotal(lines: Iterable[Tuple[float, int]]) -> float:
    """Sum of unit price x quantity over (price, quantity) pairs."""
    return round_money(sum(price * qty for price, qty in lines))


def compute_expected_total(subtotal: float, discount: float, shipping: float, tax: float) -> float:
    return round_money(max(0.0, subtotal - discount) + shipping + tax)


def totals_match(client_total: float, expected_total: float, tolerance: float) -> bool:
    return abs(round_money(client_total) - expected_total) <= tolerance
